import pytest
from sqlalchemy.exc import OperationalError

from nudge.ai.composer import (EXPIRATION_WARNING, STORAGE_SUCCESS_NOTE, ExploreRequest, Explorer,
                               plan_split)
from nudge.ai.imagery import GeneratedImage
from nudge.catalog import AssetMatch
from nudge.errors import AnalysisError, GenerationError, SearchError, ValidationError
from nudge.metadata import DEFAULT_PROJECT_METADATA, MetadataTriple

SHOT = MetadataTriple('dashboard, charts', 'focused', 'dark, minimal')


class StubExtractor:
    def __init__(self, screenshot=SHOT, prompt=MetadataTriple('generated', 'fresh', 'bright')):
        self.screenshot = screenshot
        self.prompt = prompt

    def analyze_screenshot(self, screenshot):
        if isinstance(self.screenshot, Exception):
            raise self.screenshot
        return self.screenshot

    def analyze_prompt(self, prompt):
        if isinstance(self.prompt, Exception):
            raise self.prompt
        return self.prompt


class StubSearch:
    def __init__(self, found=0, error=None):
        self.matches = [AssetMatch(id=f'a{i}', file_url=f'https://assets.test/{i}.png',
                                   metadata=MetadataTriple('k', 'e', 'l'), similarity_score=0.9 - i / 100)
                        for i in range(found)]
        self.error = error
        self.queries = []

    def search(self, query, limit=6):
        self.queries.append((query, limit))
        if self.error:
            raise self.error
        return self.matches[:limit]


class StubSynth:
    def __init__(self, produce=None, temporary=0, error=None):
        self.produce = produce
        self.temporary = temporary
        self.error = error
        self.calls = []

    def synthesize(self, base, count):
        self.calls.append((base, count))
        if self.error:
            raise self.error
        n = count if self.produce is None else self.produce
        return [GeneratedImage(url=f'https://cdn.test/{i}.png', prompt=f'Create a design inspiration based on: v{i}',
                               metadata_variation=f'v{i}', temporary=i < self.temporary) for i in range(n)]


class StubProject:
    metadata_triple = MetadataTriple('tea, packaging', 'cozy', 'earthy')


def explorer(extractor=None, search=None, synth=None, projects=None):
    projects = projects or {}
    return Explorer(extractor or StubExtractor(), search or StubSearch(), synth or StubSynth(),
                    project_loader=projects.get)


@pytest.mark.parametrize('found,expected', [
    (0, (0, 6)), (1, (1, 5)), (2, (2, 4)), (3, (3, 3)), (4, (3, 3)), (6, (3, 3)),
])
def test_plan_split(found, expected):
    assert plan_split(found) == expected


def test_keywords_only_returns_catalog_assets():
    search, synth = StubSearch(found=4), StubSynth()
    result = explorer(search=search, synth=synth).explore(keywords='sunset beach')
    assert synth.calls == []
    assert search.queries == [('sunset beach', 6)]
    assert [r['type'] for r in result.results] == ['asset'] * 4
    meta = result.source_metadata.to_dict()
    assert meta == {'combined_search_query': 'sunset beach', 'assets_found': 4}
    assert result.total_count == 4


def test_keywords_only_search_failure_is_soft():
    result = explorer(search=StubSearch(error=SearchError('Database search failed', 'timeout'))).explore(
        keywords='sunset')
    assert result.results == []
    assert result.source_metadata.asset_search_error == 'Database search failed: timeout'


def test_screenshot_with_few_matches_tops_up_with_generated():
    search, synth = StubSearch(found=2), StubSynth()
    result = explorer(search=search, synth=synth).explore(screenshot='https://shots.test/1.png')
    assert [r['type'] for r in result.results] == ['asset', 'asset'] + ['generated'] * 4
    assert synth.calls == [(SHOT.as_query(), 4)]
    meta = result.source_metadata
    assert meta.screenshot_analysis == SHOT.to_dict()
    assert (meta.assets_found, meta.assets_used, meta.images_generated) == (2, 2, 4)
    assert meta.storage_success_note == STORAGE_SUCCESS_NOTE
    assert meta.temporary_images == 0
    generated = result.results[2]
    assert generated['prompt_used'] == 'Create a design inspiration based on: v0'
    assert generated['metadata_variation'] == 'v0'
    assert generated['metadata'] == {'keywords': 'generated', 'emotion': 'fresh', 'look_and_feel': 'bright'}


def test_many_matches_cap_assets_at_three():
    synth = StubSynth()
    result = explorer(search=StubSearch(found=6), synth=synth).explore(screenshot='s', keywords='extra')
    assert len(result.results) == 6
    assert [r['id'] for r in result.results[:3]] == ['a0', 'a1', 'a2']
    assert synth.calls[0][1] == 3
    assert result.source_metadata.assets_found == 6
    assert result.source_metadata.assets_used == 3


def test_combined_query_joins_sources():
    search = StubSearch()
    result = explorer(search=search, projects={'p1': StubProject()}).explore(
        screenshot='s', project_id='p1', keywords='autumn')
    expected = ', '.join([SHOT.as_query(), StubProject.metadata_triple.as_query(), 'autumn'])
    assert search.queries[0][0] == expected
    assert result.source_metadata.combined_search_query == expected
    assert result.source_metadata.project_metadata == StubProject.metadata_triple.to_dict()


def test_screenshot_failure_falls_back_to_keywords():
    extractor = StubExtractor(screenshot=AnalysisError('Vision model request failed', 'timeout'))
    search = StubSearch()
    result = explorer(extractor=extractor, search=search).explore(screenshot='s', keywords='neon signs')
    meta = result.source_metadata
    assert meta.screenshot_analysis_error == 'Vision model request failed: timeout'
    assert meta.screenshot_analysis is None
    assert search.queries[0][0] == 'neon signs'
    assert len(result.results) == 6


def test_missing_project_is_reported():
    result = explorer().explore(project_id='nope', keywords='tea')
    assert result.source_metadata.project_fetch_error == 'Project not found: nope'
    assert result.source_metadata.combined_search_query == 'tea'


def test_only_missing_project_generates_from_defaults():
    search, synth = StubSearch(), StubSynth()
    result = explorer(search=search, synth=synth).explore(project_id='nope')
    meta = result.source_metadata
    assert meta.project_fetch_error == 'Project not found: nope'
    assert meta.default_metadata_used is True
    assert synth.calls == [(DEFAULT_PROJECT_METADATA.as_query(), 6)]
    assert len(result.results) == 6


def test_project_lookup_error_is_soft():
    def broken(project_id):
        raise OperationalError('SELECT', {}, Exception('db down'))

    ex = Explorer(StubExtractor(), StubSearch(), StubSynth(), project_loader=broken)
    result = ex.explore(project_id='p1', keywords='tea')
    assert 'db down' in result.source_metadata.project_error
    assert len(result.results) == 6


def test_empty_query_uses_default_metadata():
    extractor = StubExtractor(screenshot=AnalysisError('Invalid model response format'))
    search = StubSearch()
    result = explorer(extractor=extractor, search=search).explore(screenshot='s')
    assert search.queries[0][0] == DEFAULT_PROJECT_METADATA.as_query()
    assert result.source_metadata.default_metadata_used is True


def test_generation_yielding_nothing_keeps_assets():
    result = explorer(search=StubSearch(found=1), synth=StubSynth(produce=0)).explore(screenshot='s')
    assert [r['type'] for r in result.results] == ['asset']
    meta = result.source_metadata
    assert meta.image_generation_error == 'All 5 image generation attempts failed'
    assert meta.images_generated == 0
    assert meta.storage_success_note is None


def test_generation_exception_is_soft():
    synth = StubSynth(error=GenerationError('Image generation request failed'))
    result = explorer(search=StubSearch(found=2), synth=synth).explore(screenshot='s')
    assert len(result.results) == 2
    assert result.source_metadata.image_generation_error == 'Image generation request failed'


def test_temporary_images_raise_warning():
    result = explorer(synth=StubSynth(temporary=2)).explore(screenshot='s')
    meta = result.source_metadata
    assert meta.temporary_images == 2
    assert meta.image_expiration_warning == EXPIRATION_WARNING
    assert meta.temporary_solution_note
    assert meta.storage_success_note is None


def test_prompt_analysis_failure_uses_fallback():
    extractor = StubExtractor(prompt=AnalysisError('bad json'))
    result = explorer(extractor=extractor).explore(screenshot='s')
    metadata = result.results[0]['metadata']
    assert metadata['keywords'] == 'Create a design inspiration based on: v0'
    assert metadata['emotion'] == 'creative, inspiring, modern'
    assert metadata['look_and_feel'] == 'professional, artistic, engaging'


def test_result_metadata_is_clamped():
    search = StubSearch(found=1)
    search.matches[0].metadata = MetadataTriple('k' * 200, 'e', 'l')
    result = explorer(search=search).explore(keywords='x')
    assert len(result.results[0]['metadata']['keywords']) == 120


def test_generated_ids_are_unique():
    result = explorer().explore(screenshot='s')
    ids = [r['id'] for r in result.results]
    assert len(set(ids)) == 6


@pytest.mark.parametrize('payload', [
    [], {}, {'keywords': '   '}, {'keywords': 5}, {'projectId': ['p']},
])
def test_explore_request_validation(payload):
    with pytest.raises(ValidationError):
        ExploreRequest.from_payload(payload)


def test_explore_request_maps_project_id():
    req = ExploreRequest.from_payload({'projectId': ' p1 ', 'keywords': 'tea', 'screenshot': None})
    assert (req.project_id, req.keywords, req.screenshot) == ('p1', 'tea', None)
