from __future__ import annotations  # Judge0-compatible code execution client

import logging
import os
import re
from typing import Any, Dict, Optional

import httpx

from agents.types import CodeRun

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```[\w+-]*\n(.*?)```", re.DOTALL)


class CodeRunnerError(RuntimeError):  # Transport or protocol failure talking to the runner
    pass


def extract_source(answer: str) -> str:
    """Return the first fenced block of ``answer``, else the answer itself."""

    match = _FENCE.search(answer or "")
    if match:
        return match.group(1).strip()
    return (answer or "").strip()


class Judge0Runner:
    """Run a snippet synchronously via ``POST /submissions?wait=true``."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key_env: Optional[str] = None,
        timeout_s: float = 15.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._url = base_url.rstrip("/") + "/submissions?base64_encoded=false&wait=true"
        self._api_key_env = api_key_env
        self._timeout_s = timeout_s
        self._client = client

    def __call__(self, *, source_code: str, language_id: int) -> CodeRun:
        headers = {"Content-Type": "application/json"}
        if self._api_key_env:
            api_key = os.getenv(self._api_key_env)
            if api_key:
                headers["X-Auth-Token"] = api_key
        payload = {"source_code": source_code, "language_id": language_id}
        try:
            if self._client is not None:
                response = self._client.post(self._url, json=payload, headers=headers, timeout=self._timeout_s)
            else:
                with httpx.Client(timeout=self._timeout_s) as client:
                    response = client.post(self._url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise CodeRunnerError("Code runner transport failed") from exc
        if response.status_code >= 400:
            raise CodeRunnerError(f"Code runner returned status {response.status_code}")
        return _to_run(response.json())


def _to_run(data: Dict[str, Any]) -> CodeRun:
    status = data.get("status") or {}
    description = status.get("description", "") if isinstance(status, dict) else str(status)
    return CodeRun(
        stdout=data.get("stdout") or "",
        stderr=data.get("stderr") or data.get("compile_output") or "",
        status_description=description,
    )


__all__ = ["CodeRunnerError", "Judge0Runner", "extract_source"]
