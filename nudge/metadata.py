from dataclasses import dataclass, asdict
from typing import Mapping

MAX_FIELD_LENGTH = 120
FIELDS = ('keywords', 'emotion', 'look_and_feel')


@dataclass(frozen=True)
class MetadataTriple:
    """The {keywords, emotion, look_and_feel} style descriptor."""
    keywords: str
    emotion: str
    look_and_feel: str

    @classmethod
    def from_mapping(cls, data: Mapping, default: 'MetadataTriple | None' = None) -> 'MetadataTriple':
        values = {}
        for name in FIELDS:
            value = data.get(name)
            if not value and default is not None:
                value = getattr(default, name)
            values[name] = str(value or '')
        return cls(**values)

    def clamped(self, limit: int = MAX_FIELD_LENGTH) -> 'MetadataTriple':
        return MetadataTriple(self.keywords[:limit], self.emotion[:limit], self.look_and_feel[:limit])

    def as_query(self) -> str:
        """Labelled form used in the combined search query."""
        return f"keywords: {self.keywords}, emotion: {self.emotion}, look_and_feel: {self.look_and_feel}"

    def as_text(self) -> str:
        """Space-joined form embedded for catalog entries."""
        return f"{self.keywords} {self.emotion} {self.look_and_feel}"

    def to_dict(self) -> dict:
        return asdict(self)


DEFAULT_PROJECT_METADATA = MetadataTriple(
    keywords='business, professional, modern',
    emotion='trustworthy, innovative, reliable',
    look_and_feel='clean, organized, contemporary',
)

DEFAULT_ASSET_METADATA = MetadataTriple(
    keywords='design, visual, creative',
    emotion='professional, modern',
    look_and_feel='clean, structured',
)


def fallback_for_prompt(prompt: str) -> MetadataTriple:
    """Display metadata for a generated image whose prompt could not be analyzed."""
    return MetadataTriple(
        keywords=prompt[:MAX_FIELD_LENGTH],
        emotion='creative, inspiring, modern',
        look_and_feel='professional, artistic, engaging',
    )
