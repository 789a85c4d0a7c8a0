import base64
import binascii
import enum
import io
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

import requests
from openai import OpenAIError  # type: ignore
from PIL import Image, ImageDraw, ImageFont  # type: ignore

from ..errors import AnalysisError, GenerationError, PersistenceError
from .decoder import decode_string_list

logger = logging.getLogger(__name__)

IMAGE_PROMPT_PREFIX = 'Create a design inspiration based on: '

VARIATION_PROMPT = """Given this design metadata: "{metadata}"

Generate {count} different variations that maintain the same theme but use different words. Each variation should have:
- Keywords: Similar concepts but different specific words (e.g., if "birthday cake" -> use "party hat", "balloon", "gift box")
- Emotion: Related feelings but different expressions (e.g., if "joyful" -> use "excited", "cheerful", "delighted")
- Look and feel: Similar aesthetic but different descriptors (e.g., if "vibrant" -> use "colorful", "energetic", "lively")

Return ONLY the variations as a JSON array of strings, each containing the full metadata for one variation. Example format:
[
  "keywords: party hat, celebration, festive, emotion: excited, cheerful, look and feel: colorful, energetic, playful",
  "keywords: balloon, party, fun, emotion: delighted, happy, look and feel: vibrant, lively, cheerful"
]"""


@dataclass
class ProviderImage:
    """What an image model hands back: a (time-limited) URL and/or the bytes."""
    url: Optional[str] = None
    data: Optional[bytes] = None


@dataclass
class GeneratedImage:
    url: str
    prompt: str
    metadata_variation: str
    original_url: Optional[str] = None
    filename: Optional[str] = None
    temporary: bool = False


class SlotState(enum.Enum):
    PENDING = 'pending'
    RETRYING = 'retrying'
    SUCCEEDED = 'succeeded'
    DROPPED = 'dropped'


@dataclass
class GenerationSlot:
    """One requested image and its retry lifecycle."""
    index: int
    variation: str
    state: SlotState = SlotState.PENDING
    retries: int = 0
    result: Optional[ProviderImage] = None
    last_error: Optional[str] = None

    @property
    def prompt(self) -> str:
        return f"{IMAGE_PROMPT_PREFIX}{self.variation}"

    @property
    def active(self) -> bool:
        return self.state in (SlotState.PENDING, SlotState.RETRYING)

    def succeed(self, image: ProviderImage):
        self.state = SlotState.SUCCEEDED
        self.result = image

    def fail(self, error: str, max_retries: int) -> bool:
        """Record a failed attempt; returns True when another attempt is due."""
        self.last_error = error
        if self.retries >= max_retries:
            self.state = SlotState.DROPPED
            return False
        self.retries += 1
        self.state = SlotState.RETRYING
        return True


class OpenAIImageProvider:
    def __init__(self, client, model: str = 'dall-e-3', size: str = '1024x1024'):
        self.client = client
        self.model = model
        self.size = size

    def generate(self, prompt: str) -> ProviderImage:
        try:
            resp = self.client.images.generate(model=self.model, prompt=f"{prompt}.", n=1, size=self.size)
        except OpenAIError as e:
            raise GenerationError('Image generation request failed', details=str(e)) from e
        try:
            item = resp.data[0]
        except (AttributeError, IndexError, TypeError) as e:
            raise GenerationError('Invalid image generation response format') from e
        url = getattr(item, 'url', None)
        b64 = getattr(item, 'b64_json', None)
        if b64:
            try:
                data = base64.b64decode(b64, validate=True)
            except (binascii.Error, ValueError) as e:
                raise GenerationError('Invalid image generation response format', details=str(e)) from e
            return ProviderImage(url=url, data=data)
        if url:
            return ProviderImage(url=url)
        raise GenerationError('Image generation response carried no image')


def render_placeholder(prompt: str, size: int = 512) -> bytes:
    """Render a PNG containing the prompt text."""
    img = Image.new('RGB', (size, size), color=(255, 255, 255))
    d = ImageDraw.Draw(img)
    fnt = ImageFont.load_default()
    text = (prompt or 'Generated')[:200]
    # Wrap roughly to the canvas width
    lines = [text[i:i + 60] for i in range(0, len(text), 60)]
    for n, line in enumerate(lines):
        d.text((10, 10 + n * 14), line, fill=(0, 0, 0), font=fnt)
    buf = io.BytesIO()
    img.save(buf, 'PNG')
    return buf.getvalue()


class LocalImageProvider:
    """Offline backend producing placeholder images with Pillow."""

    def generate(self, prompt: str) -> ProviderImage:
        return ProviderImage(data=render_placeholder(prompt))


class ImageSynthesizer:
    """Generates ``count`` thematically varied images for a metadata string.

    Slots run sequentially. A slot that keeps failing is dropped; it never
    aborts the others.
    """

    def __init__(self, client, provider, storage, model: str = 'gpt-4o', max_retries: int = 2,
                 retry_delay: float = 1.0, download_timeout: float = 30.0,
                 sleep: Callable[[float], None] = time.sleep):
        self.client = client
        self.provider = provider
        self.storage = storage
        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.download_timeout = download_timeout
        self.sleep = sleep

    # --- variations -------------------------------------------------------
    def _request_variations(self, base: str, count: int) -> List[str]:
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[{'role': 'user', 'content': VARIATION_PROMPT.format(metadata=base, count=count)}],
                max_tokens=800,
                temperature=0.8,
            )
            content = resp.choices[0].message.content
        except OpenAIError as e:
            raise AnalysisError('Variation request failed', details=str(e)) from e
        except (AttributeError, IndexError, TypeError) as e:
            raise AnalysisError('Invalid model response format') from e
        return decode_string_list(content)

    def generate_variations(self, base: str, count: int) -> List[str]:
        if count <= 0:
            return []
        try:
            variations = self._request_variations(base, count)
        except AnalysisError as e:
            logger.warning('Metadata variations failed (%s); using numbered fallback', e)
            return [base if i == 0 else f"{base} - variation {i + 1}" for i in range(count)]
        while len(variations) < count:
            variations.append(variations[0])
        return variations[:count]

    # --- slots ------------------------------------------------------------
    def run_slot(self, slot: GenerationSlot) -> GenerationSlot:
        while slot.active:
            try:
                slot.succeed(self.provider.generate(slot.prompt))
            except GenerationError as e:
                attempt = slot.retries + 1
                logger.warning('Image %d attempt %d failed: %s', slot.index + 1, attempt, e)
                if slot.fail(str(e), self.max_retries):
                    self.sleep(self.retry_delay * slot.retries)
        if slot.state is SlotState.DROPPED:
            logger.error('Could not generate image %d after %d attempts', slot.index + 1, slot.retries + 1)
        return slot

    def _download(self, url: str) -> bytes:
        try:
            resp = requests.get(url, timeout=self.download_timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise PersistenceError('Failed to download generated image', details=str(e)) from e
        return resp.content

    def _persist(self, slot: GenerationSlot, token: str) -> GeneratedImage:
        picture = slot.result
        stamp = datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S%fZ')
        filename = f"generated-{stamp}-{token}-{slot.index + 1}.png"
        try:
            data = picture.data if picture.data is not None else self._download(picture.url)
            stored = self.storage.upload(filename, data)
            return GeneratedImage(
                url=self.storage.public_url(stored),
                prompt=slot.prompt,
                metadata_variation=slot.variation,
                original_url=picture.url,
                filename=stored,
            )
        except PersistenceError as e:
            logger.warning('Image %d not persisted (%s); using transient URL', slot.index + 1, e)
            fallback = picture.url
            if not fallback:
                fallback = 'data:image/png;base64,' + base64.b64encode(picture.data).decode('ascii')
            return GeneratedImage(
                url=fallback,
                prompt=slot.prompt,
                metadata_variation=slot.variation,
                original_url=picture.url,
                temporary=True,
            )

    def synthesize(self, base_metadata: str, count: int) -> List[GeneratedImage]:
        if count <= 0:
            return []
        variations = self.generate_variations(base_metadata, count)
        token = uuid.uuid4().hex[:8]
        images = []
        for i, variation in enumerate(variations):
            slot = self.run_slot(GenerationSlot(index=i, variation=variation))
            if slot.state is SlotState.SUCCEEDED:
                images.append(self._persist(slot, token))
        logger.info('Generated %d of %d requested images', len(images), count)
        return images
