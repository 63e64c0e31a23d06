# uad: Chat backend. A minimal HTTP client for OpenAI-compatible chat completions with provider autodetection (OpenAI or Azure OpenAI).
# One blocking call per request; failures surface as BackendError and are never retried.

import json
import os
import pathlib
import time
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests

from .config import AI_MODEL, HTTP_TIMEOUT, MAX_COMPLETION_TOKENS
from .context import Context
from .settings import settings_section


class BackendError(RuntimeError):
    """The chat backend could not produce a response."""


class ChatBackend(Protocol):
    def generate_response(self, prompt: str, history: Sequence[Dict[str, str]]) -> str:
        """Return the assistant's text for prompt, given prior role/content messages."""
        ...


def build_messages(prompt: str, history: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
    """Prior messages followed by the new user prompt, in chat-completions shape."""
    messages = [{"role": str(m.get("role", "user")), "content": str(m.get("content", ""))} for m in history]
    messages.append({"role": "user", "content": prompt})
    return messages


class ChatCompletionsClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None,
        ctx: Optional[Context] = None,
        timeout: int = HTTP_TIMEOUT,
    ) -> None:
        """
        Initialize the client with provider autodetection.

        Value precedence (highest first):
          1) Constructor args (api_key/model/base_url)
          2) settings['api'] values (provider, api_key, model, base_url)
          3) Environment
             - OpenAI: OPENAI_API_KEY, AI_MODEL, OPENAI_BASE_URL
             - Azure:  AZURE_OPENAI_API_KEY, AZURE_OPENAI_MODEL, AZURE_OPENAI_ENDPOINT

        Provider detection rules:
          - If settings['api']['provider'] is 'azure' or 'openai', use it.
          - Else if Azure env hints exist or base_url looks like an Azure endpoint, use 'azure'.
          - Otherwise default to 'openai'.

        Base URL normalization:
          - OpenAI: default https://api.openai.com/v1 ("/v1" suffix ensured)
          - Azure:  {endpoint}/openai/v1 ("/openai/v1" suffix ensured)
        """
        self.session = requests.Session()
        self.ctx = ctx
        self.timeout = timeout
        self.settings = settings or {}

        api_cfg = settings_section(settings, "api")

        provider: Optional[str] = str(api_cfg.get("provider") or "").strip().lower() or None

        def _looks_like_azure(url: Optional[str]) -> bool:
            if not url:
                return False
            u = url.lower()
            return ("azure.com" in u) or ("/openai/" in u)

        if provider not in ("azure", "openai"):
            if (os.environ.get("AZURE_OPENAI_API_KEY") or os.environ.get("AZURE_OPENAI_ENDPOINT")) or _looks_like_azure(base_url or api_cfg.get("base_url")):
                provider = "azure"
            else:
                provider = "openai"

        if provider == "azure":
            resolved_api_key = api_key or api_cfg.get("api_key") or os.environ.get("AZURE_OPENAI_API_KEY")
            resolved_model = model or api_cfg.get("model") or os.environ.get("AZURE_OPENAI_MODEL")
            endpoint = base_url or api_cfg.get("base_url") or os.environ.get("AZURE_OPENAI_ENDPOINT")
            if not endpoint:
                raise BackendError("Azure provider selected but no endpoint provided (AZURE_OPENAI_ENDPOINT or settings.api.base_url).")
            endpoint = endpoint.rstrip("/")
            if not endpoint.endswith("/openai/v1"):
                if endpoint.endswith("/openai"):
                    endpoint = f"{endpoint}/v1"
                else:
                    endpoint = f"{endpoint}/openai/v1"
            resolved_base_url = endpoint
            if not resolved_api_key:
                raise BackendError("Azure provider selected but no API key provided (AZURE_OPENAI_API_KEY or settings.api.api_key).")
            if not resolved_model:
                raise BackendError("Azure provider selected but no model deployment provided (AZURE_OPENAI_MODEL or settings.api.model).")
            self.session.headers.update({
                "api-key": resolved_api_key,
                "Content-Type": "application/json",
            })
        else:
            resolved_api_key = api_key or api_cfg.get("api_key") or os.environ.get("OPENAI_API_KEY")
            resolved_model = model or api_cfg.get("model") or AI_MODEL
            resolved_base_url = base_url or api_cfg.get("base_url") or os.environ.get("OPENAI_BASE_URL") or "https://api.openai.com/v1"
            resolved_base_url = resolved_base_url.rstrip("/")
            if not resolved_base_url.endswith("/v1"):
                resolved_base_url = f"{resolved_base_url}/v1"
            if not resolved_api_key:
                raise BackendError("OpenAI provider selected but no API key provided (OPENAI_API_KEY, settings.api.api_key or user key file).")
            self.session.headers.update({
                "Authorization": f"Bearer {resolved_api_key}",
                "Content-Type": "application/json",
            })

        self.model = resolved_model  # OpenAI model id or Azure deployment name
        self.base_url = resolved_base_url
        self.provider = provider

    def _log(self, message: str) -> None:
        if self.ctx:
            self.ctx.log(message)

    def _http_log_dir(self) -> Optional[pathlib.Path]:
        """Directory for request dumps when settings.logging.httpcalls.enabled is true."""
        log_cfg = settings_section(settings_section(self.settings, "logging"), "httpcalls")
        if log_cfg.get("enabled") is not True:
            return None
        workspace = pathlib.Path(getattr(self.ctx, "workspace", None) or ".")
        custom_dir = log_cfg.get("dir")
        if custom_dir:
            cpath = pathlib.Path(str(custom_dir))
            return cpath if cpath.is_absolute() else workspace / cpath
        return workspace / ".httpcalls"

    def _log_usage(self, resp_obj: Dict[str, Any]) -> None:
        usage = resp_obj.get("usage") or {}
        if not isinstance(usage, dict):
            return
        self._log(
            f"OpenAI usage: prompt_tokens={usage.get('prompt_tokens', 0)}, completion_tokens={usage.get('completion_tokens', 0)}"
        )

    def generate_response(self, prompt: str, history: Sequence[Dict[str, str]]) -> str:
        """
        Send history + prompt to {base_url}/chat/completions and return the first choice's text.

        Raises:
            BackendError: On connection errors, timeouts, non-200 responses,
                undecodable bodies or an empty completion.
        """
        url = f"{self.base_url}/chat/completions"
        payload = {
            "model": self.model,
            "messages": build_messages(prompt, history),
            "max_completion_tokens": MAX_COMPLETION_TOKENS,
        }

        log_dir = self._http_log_dir()
        if log_dir is not None:
            headers_for_log = dict(self.session.headers)
            if "Authorization" in headers_for_log:
                headers_for_log["Authorization"] = "Bearer {{OPENAI_API_KEY}}"
            if "api-key" in headers_for_log:
                headers_for_log["api-key"] = "{{AZURE_OPENAI_API_KEY}}"
            dump_http_file(log_dir / f"call-{int(time.time() * 1000)}.http", url, "POST", headers_for_log, payload, self.ctx)

        self._log(f"Calling model {self.model}...")
        try:
            r = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise BackendError(f"chat backend timed out after {self.timeout}s: {e}")
        except requests.exceptions.RequestException as e:
            raise BackendError(f"chat backend request failed: {e}")

        if r.status_code != 200:
            raise BackendError(f"chat backend error {r.status_code}: {r.text[:2000]}")
        try:
            resp = r.json()
        except ValueError as e:
            raise BackendError(f"chat backend returned a non-JSON body: {e}")

        self._log_usage(resp)

        choices = resp.get("choices") if isinstance(resp, dict) else None
        content = None
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            if isinstance(message, dict):
                content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise BackendError("chat backend returned an empty response")
        return content


def dump_http_file(file: pathlib.Path, url: str, method: str, headers: Dict[str, str], obj: Any, ctx: Optional[Context] = None) -> None:
    """
    Write a human-readable HTTP request dump (REST Client format) for debugging.

    Best-effort: serialization and I/O errors are reported through ctx and never raised.
    """
    try:
        json_str = json.dumps(obj, indent=2, ensure_ascii=False)
        file.parent.mkdir(parents=True, exist_ok=True)
        with open(file, "w", encoding="utf-8") as f:
            f.write(f"{method.upper()} {url}\n")
            for key, value in headers.items():
                f.write(f"{key}: {value}\n")
            f.write("\n")
            f.write(json_str)
    except (TypeError, OSError) as e:
        if ctx:
            ctx.error_message(f"Could not dump HTTP request to {file}: {e}")
