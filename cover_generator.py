import base64
import logging
from typing import Optional

from google import genai
from google.genai import types

from exceptions import CoverGenerationError
from settings import get_settings

logger = logging.getLogger(__name__)

COVER_PROMPT = (
    'A professional, aesthetic book cover for a book titled "{title}" by {author}. '
    'Minimalist, artistic design. No text on the cover.'
)


class CoverGenerator:
    """Imagen cover generator returning covers as PNG data URIs"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        settings = get_settings()
        api_key = api_key or settings.GEMINI_API_KEY
        if not api_key:
            raise CoverGenerationError("GEMINI_API_KEY is not set. Cover generation is unavailable.")
        self.client = genai.Client(api_key=api_key)
        self.model_name = model or settings.COVER_MODEL
        logger.info(f"Cover generator: model={self.model_name}")

    def generate(self, title: str, author: str) -> Optional[str]:
        """
        Generate a cover image for a book.

        Returns:
            Optional[str]: A data:image/png;base64 URI, or None if the model
            returned no image
        """
        if not (title or "").strip() or not (author or "").strip():
            raise CoverGenerationError("Please enter a title and author before generating a cover.")

        try:
            response = self.client.models.generate_images(
                model=self.model_name,
                prompt=COVER_PROMPT.format(title=title, author=author),
                config=types.GenerateImagesConfig(
                    number_of_images=1,
                    output_mime_type="image/png",
                    aspect_ratio="3:4",
                ),
            )
        except Exception as e:
            logger.error(f"Error generating cover: {e}", exc_info=True)
            raise CoverGenerationError(f"Cover generation failed: {e}") from e

        if not response.generated_images:
            logger.warning(f"No cover image returned for: {title}")
            return None

        image_bytes = response.generated_images[0].image.image_bytes
        return f"data:image/png;base64,{base64.b64encode(image_bytes).decode('ascii')}"
