"""
Ollama Inference Client for LessonScribe
Runs vision extraction calls through Ollama's REST API.

- /api/generate with a system prompt and base64 page images
- Non-streaming, so the full JSON answer arrives in one response
- Token usage taken from prompt_eval_count / eval_count
- No retries: a failed call fails the batch, and with it the strategy
"""

import threading
import time

import requests

from lessonscribe.config import OLLAMA_API_BASE, OLLAMA_CONTEXT_WINDOW, OLLAMA_TIMEOUT_SECONDS
from lessonscribe.logging_config import debug_log, warning

from .inference_client import ImagePayload, InferenceClient, InferenceRequestError, InferenceResponse


class OllamaInferenceClient(InferenceClient):
    """
    Inference client backed by a local or remote Ollama server.

    Example:
        client = OllamaInferenceClient()
        response = client.invoke(system, prompt, images, "llama3.2-vision:11b", 4000, 0.1)
        print(response.text, response.total_tokens)
    """

    def __init__(
        self,
        api_base: str = OLLAMA_API_BASE,
        timeout: float = OLLAMA_TIMEOUT_SECONDS,
        context_window: int = OLLAMA_CONTEXT_WINDOW,
        session: requests.Session | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_base: Ollama server URL
            timeout: Seconds to wait for one generation
            context_window: num_ctx sent with every request
            session: Optional requests session. When given it is used from
                every thread; otherwise each thread gets its own Session,
                since one Session is not safe to share across a thread pool.
        """
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.context_window = context_window
        self._shared_session = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """The injected session, or this thread's own."""
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session

    def is_available(self) -> bool:
        """Check if Ollama is running and accessible."""
        try:
            response = self.session.get(f"{self.api_base}/api/tags", timeout=5)
        except requests.exceptions.RequestException as e:
            debug_log(f"[OLLAMA] Connection error: {e}")
            return False
        return response.status_code == 200

    def invoke(
        self,
        system_prompt: str,
        user_prompt: str,
        images: list[ImagePayload],
        model_id: str,
        max_tokens: int,
        temperature: float,
    ) -> InferenceResponse:
        """Run one generation over the given page images."""
        debug_log(f"[OLLAMA GENERATE] Model: {model_id}, images: {len(images)}")
        debug_log(f"[OLLAMA GENERATE] Max tokens: {max_tokens}, Temperature: {temperature}")
        debug_log(f"[OLLAMA GENERATE] Prompt length: {len(user_prompt)} chars")

        # Check if the text part alone may exceed context window (1 token ≈ 4 chars)
        estimated_tokens = (len(system_prompt) + len(user_prompt)) // 4
        if estimated_tokens > self.context_window - max_tokens:
            warning(
                f"Prompt ({estimated_tokens} estimated tokens) plus {max_tokens} output tokens "
                f"may not fit the {self.context_window} token context window."
            )

        payload = {
            "model": model_id,
            "system": system_prompt,
            "prompt": user_prompt,
            "images": [image.data for image in images],
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
                "num_ctx": self.context_window,
            },
        }

        start_time = time.time()
        try:
            response = self.session.post(
                f"{self.api_base}/api/generate",
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise InferenceRequestError(
                model_id, f"Generation timeout after {self.timeout} seconds"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise InferenceRequestError(
                model_id, f"Cannot connect to Ollama at {self.api_base}. Is Ollama running?"
            ) from e
        except requests.exceptions.RequestException as e:
            raise InferenceRequestError(model_id, f"Generation request failed: {e}") from e

        if response.status_code != 200:
            raise InferenceRequestError(
                model_id, f"Ollama returned status {response.status_code}: {response.text[:200]}"
            )

        try:
            result = response.json()
        except ValueError as e:
            raise InferenceRequestError(model_id, "Ollama returned a non-JSON body") from e

        text = result.get("response", "") or ""
        input_tokens = int(result.get("prompt_eval_count", 0) or 0)
        output_tokens = int(result.get("eval_count", 0) or 0)
        elapsed = time.time() - start_time

        debug_log(
            f"[OLLAMA GENERATE] Complete: {input_tokens}+{output_tokens} tokens in {elapsed:.2f}s"
        )
        debug_log(f"[OLLAMA GENERATE] Output preview (first 100 chars): {text[:100]}")

        return InferenceResponse(text=text, input_tokens=input_tokens, output_tokens=output_tokens)
