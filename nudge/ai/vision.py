import base64
import io
import logging
from typing import Union

from openai import OpenAIError  # type: ignore
from PIL import Image, UnidentifiedImageError  # type: ignore

from ..errors import AnalysisError
from ..metadata import MetadataTriple
from .decoder import decode_metadata

logger = logging.getLogger(__name__)

_JSON_SHAPE = 'Respond in JSON format: {"keywords": "...", "emotion": "...", "look_and_feel": "..."}'

SCREENSHOT_PROMPT = f"""Analyze this design screenshot and extract:
1. Keywords (max 120 chars): Design elements, style, objects, themes
2. Emotion (max 120 chars): Feelings and mood conveyed
3. Look and feel (max 120 chars): Visual style, aesthetic, composition

{_JSON_SHAPE}"""

ASSET_IMAGE_PROMPT = f"""Analyze this design/image and extract:
1. Keywords (max 120 chars): Design elements, style, objects, themes, colors
2. Emotion (max 120 chars): Feelings and mood conveyed
3. Look and feel (max 120 chars): Visual style, aesthetic, composition

{_JSON_SHAPE}"""

BRIEF_PROMPT = f"""Analyze this project brief and extract:
1. Keywords (max 120 chars): Main themes, industry, style preferences, requirements
2. Emotion (max 120 chars): Desired feelings and brand personality
3. Look and feel (max 120 chars): Visual style, aesthetic direction, design approach

{_JSON_SHAPE}"""

GENERATION_PROMPT = f"""Analyze the user's design prompt and extract:
1. Keywords (max 120 chars): Design elements, style, objects, themes, colors, patterns
2. Emotion (max 120 chars): Feelings and mood conveyed, emotional response
3. Look and feel (max 120 chars): Visual style, aesthetic, composition, design approach

{_JSON_SHAPE}"""


def image_to_url(image: Union[str, bytes]) -> str:
    """Return a URL the vision model accepts for a remote URL, data URL or raw bytes."""
    if isinstance(image, str):
        if not image.strip():
            raise AnalysisError('Empty image reference')
        return image.strip()
    try:
        with Image.open(io.BytesIO(image)) as im:
            fmt = (im.format or 'PNG').lower()
    except (UnidentifiedImageError, OSError) as e:
        raise AnalysisError('Unreadable image data', details=str(e)) from e
    encoded = base64.b64encode(image).decode('ascii')
    return f"data:image/{fmt};base64,{encoded}"


class MetadataExtractor:
    """Turns a screenshot, image, brief or prompt into a MetadataTriple.

    A single chat-completions call per extraction; no retry here, callers
    decide what a failure means for them.
    """

    def __init__(self, client, model: str = 'gpt-4o', max_tokens: int = 300):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    def _complete(self, content) -> str:
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[{'role': 'user', 'content': content}],
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            raise AnalysisError('Vision model request failed', details=str(e)) from e
        try:
            text = resp.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise AnalysisError('Invalid model response format') from e
        if not text:
            raise AnalysisError('Invalid model response format')
        return text

    def analyze_image(self, image: Union[str, bytes], prompt: str = SCREENSHOT_PROMPT) -> MetadataTriple:
        content = [
            {'type': 'text', 'text': prompt},
            {'type': 'image_url', 'image_url': {'url': image_to_url(image)}},
        ]
        metadata = decode_metadata(self._complete(content))
        logger.debug('Image analysis: %s', metadata)
        return metadata

    def analyze_text(self, text: str, prompt: str = GENERATION_PROMPT, label: str = 'User prompt') -> MetadataTriple:
        if not text or not text.strip():
            raise AnalysisError('Nothing to analyze')
        return decode_metadata(self._complete(f"{prompt}\n\n{label}: {text}"))

    def analyze_screenshot(self, screenshot: Union[str, bytes]) -> MetadataTriple:
        return self.analyze_image(screenshot, SCREENSHOT_PROMPT)

    def analyze_asset_image(self, file_url: str) -> MetadataTriple:
        return self.analyze_image(file_url, ASSET_IMAGE_PROMPT)

    def analyze_brief(self, brief: str) -> MetadataTriple:
        return self.analyze_text(brief, BRIEF_PROMPT, label='Brief')

    def analyze_prompt(self, prompt: str) -> MetadataTriple:
        return self.analyze_text(prompt, GENERATION_PROMPT)
