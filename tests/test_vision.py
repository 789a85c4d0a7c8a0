import pytest

from fakes import FakeOpenAI, api_error, png_bytes
from nudge.ai.vision import BRIEF_PROMPT, SCREENSHOT_PROMPT, MetadataExtractor, image_to_url
from nudge.errors import AnalysisError


@pytest.fixture
def client():
    return FakeOpenAI()


def test_analyze_screenshot_sends_image(client):
    extractor = MetadataExtractor(client)
    meta = extractor.analyze_screenshot('https://shots.test/page.png')
    assert meta.keywords == 'botanical, watercolor, leaves'

    call = client.chat.completions.calls[0]
    assert call['model'] == 'gpt-4o'
    assert call['max_tokens'] == 300
    text_part, image_part = call['messages'][0]['content']
    assert text_part == {'type': 'text', 'text': SCREENSHOT_PROMPT}
    assert image_part['image_url']['url'] == 'https://shots.test/page.png'


def test_image_bytes_become_data_url():
    url = image_to_url(png_bytes())
    assert url.startswith('data:image/png;base64,')
    with pytest.raises(AnalysisError):
        image_to_url(b'not an image')


def test_analyze_brief_labels_text(client):
    MetadataExtractor(client, model='gpt-4o-mini').analyze_brief('A tea brand for night owls')
    call = client.chat.completions.calls[0]
    assert call['model'] == 'gpt-4o-mini'
    content = call['messages'][0]['content']
    assert content.startswith(BRIEF_PROMPT)
    assert content.endswith('Brief: A tea brand for night owls')


def test_provider_failure_is_analysis_error(client):
    client.chat.completions.handler = lambda content: api_error()
    with pytest.raises(AnalysisError) as exc:
        MetadataExtractor(client).analyze_prompt('neon city')
    assert exc.value.message == 'Vision model request failed'


def test_empty_answer_is_analysis_error(client):
    client.chat.completions.handler = lambda content: ''
    with pytest.raises(AnalysisError) as exc:
        MetadataExtractor(client).analyze_screenshot('https://shots.test/page.png')
    assert exc.value.message == 'Invalid model response format'


def test_blank_text_is_rejected_without_a_call(client):
    with pytest.raises(AnalysisError):
        MetadataExtractor(client).analyze_prompt('   ')
    assert client.chat.completions.calls == []
