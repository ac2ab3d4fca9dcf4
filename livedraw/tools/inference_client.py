"""HTTP client for the remote diffusion inference endpoint."""
import logging
from typing import Optional

import httpx

from ..exceptions import InferenceError

logger = logging.getLogger(__name__)


class InferenceClient:
    """Posts an image + prompt to the diffusion endpoint and returns the image it sends back.

    The endpoint takes multipart fields ``image`` (JPEG), ``prompt`` and
    ``num_iterations``; the response body is the generated image.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def regenerate(self, image_jpeg: bytes, prompt: str, num_iterations: int) -> bytes:
        """
        Run one inference request.

        Args:
            image_jpeg: Composite (or previous output) as JPEG bytes
            prompt: Text prompt
            num_iterations: Diffusion iteration count

        Returns:
            The generated image bytes

        Raises:
            InferenceError: On transport errors, non-2xx responses or an empty body
        """
        files = {"image": ("image.jpg", image_jpeg, "image/jpeg")}
        data = {"prompt": prompt, "num_iterations": str(num_iterations)}
        try:
            response = await self._get_client().post(self.url, data=data, files=files)
        except httpx.HTTPError as e:
            raise InferenceError(f"Inference request failed: {e}") from e

        if response.status_code >= 400:
            raise InferenceError(
                f"Inference endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if not response.content:
            raise InferenceError("Inference endpoint returned an empty body", status_code=response.status_code)
        return response.content

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
