import time
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Any, List, Tuple

from langchain_ollama import ChatOllama
from langchain_core.messages import HumanMessage
import httpx

from cricket_trivia.core.errors import CollaboratorUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SamplingParams:
    """
    Per-request sampling settings for the generative service.
    """
    temperature: float = 0.7
    top_p: float = 0.8
    max_tokens: int = 4096


class OllamaClient:
    """
    LangChain-based Ollama client with retry logic and proper connection handling.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        num_ctx: int = 8192,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        timeout: float = 300.0,
    ):
        # ChatOllama uses Ollama's native API, not OpenAI-compatible /v1 endpoint
        # Strip /v1 suffix if present
        if base_url.endswith("/v1"):
            base_url = base_url[:-3]
        elif base_url.endswith("/v1/"):
            base_url = base_url[:-4]

        self.base_url = base_url.rstrip('/')
        self.model = model
        self.num_ctx = num_ctx
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

        self._models: Dict[Tuple[float, float, int], ChatOllama] = {}

    def _llm_for(self, params: SamplingParams) -> ChatOllama:
        key = (params.temperature, params.top_p, params.max_tokens)
        llm = self._models.get(key)
        if llm is None:
            llm = ChatOllama(
                base_url=self.base_url,
                model=self.model,
                temperature=params.temperature,
                top_p=params.top_p,
                num_predict=params.max_tokens,
                num_ctx=self.num_ctx,
            )
            self._models[key] = llm
        return llm

    async def _invoke_with_retry(self, llm: ChatOllama, messages: List[HumanMessage]) -> Any:
        """
        Invoke LLM with retry logic for connection failures.
        """
        last_exception = None

        for attempt in range(1, self.max_retries + 1):
            try:
                response = await asyncio.wait_for(
                    llm.ainvoke(messages),
                    timeout=self.timeout,
                )
                return response

            except asyncio.TimeoutError:
                last_exception = TimeoutError(
                    f"Request timed out after {self.timeout}s"
                )
                logger.warning(
                    f"Attempt {attempt}/{self.max_retries}: Timeout, retrying..."
                )

            except Exception as e:
                last_exception = e
                error_msg = str(e)

                if "connection" in error_msg.lower() or "connect" in error_msg.lower():
                    logger.warning(
                        f"Attempt {attempt}/{self.max_retries}: Connection error - {error_msg} (base_url={self.base_url}, model={self.model})"
                    )
                else:
                    # For non-connection errors, don't retry
                    raise

            if attempt < self.max_retries:
                delay = self.retry_delay * attempt
                await asyncio.sleep(delay)

        if isinstance(last_exception, TimeoutError):
            raise last_exception
        raise CollaboratorUnavailableError(
            f"Ollama unreachable after {self.max_retries} attempts (base_url={self.base_url}): {last_exception}"
        ) from last_exception

    async def evaluate(self, prompt: str, params: SamplingParams = SamplingParams()) -> Dict[str, Any]:
        """
        Evaluate a prompt and return the response with metadata.
        """
        start = time.time()

        response = await self._invoke_with_retry(
            self._llm_for(params),
            [HumanMessage(content=prompt)],
        )

        latency_ms = int((time.time() - start) * 1000)

        return {
            "raw": response,
            "content": response.content,
            "latency_ms": latency_ms,
        }

    async def generate(self, prompt: str, params: SamplingParams = SamplingParams()) -> str:
        """
        Return the raw text reply for a prompt.
        """
        result = await self.evaluate(prompt, params)
        logger.debug(f"LLM reply in {result['latency_ms']}ms ({len(result['content'])} chars)")
        return result["content"]

    async def health_check(self) -> bool:
        """
        Check if the Ollama server is reachable by calling /api/tags.
        """
        url = f"{self.base_url}/api/tags"
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(url)
                if resp.status_code == 200:
                    return True
                logger.error(f"Ollama health check failed: {resp.status_code} {resp.text}")
                return False
        except Exception as e:
            logger.error(f"Ollama health check error: {e} (url={url})")
            return False

    async def ensure_available(self) -> None:
        """
        Raise if the server is unreachable, so a run fails before any work is done.
        """
        if not await self.health_check():
            raise CollaboratorUnavailableError(
                f"Ollama server not reachable at {self.base_url} (model={self.model})"
            )
