"""
Backend capability clients.

Thin typed calls to the retrieval, URL content and code execution
endpoints. Results are passed through without local filtering.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Literal, Optional, get_args

import structlog

from .backend import BackendClient

logger = structlog.get_logger(__name__)

UrlContentType = Literal["pdf", "google_doc", "google_sheet", "web_page", "youtube_video", "image"]
CodeLanguage = Literal["node", "javascript", "python", "typescript", "cpp", "unknown"]

CODE_LANGUAGES = list(get_args(CodeLanguage))
UNKNOWN_LANGUAGE = "unknown"


class UnsupportedLanguageError(Exception):
    """Raised before any network call when code cannot be executed."""

    def __init__(self, language: str):
        super().__init__("This programming language is not supported")
        self.message = "This programming language is not supported"
        self.language = language


class CapabilityBackend(ABC):
    """Retrieval, content extraction and code execution operations."""

    @abstractmethod
    async def get_relevant_docs(
        self,
        query: str,
        collection_name: str,
        num_docs: Optional[int] = None,
        sources: Optional[List[str]] = None,
    ) -> List[Any]:
        """Return the documents most relevant to query from a collection."""

    @abstractmethod
    async def get_url_content(self, url: str, type: Optional[str] = None) -> str:
        """Return the normalized text content of url."""

    @abstractmethod
    async def execute_code(self, code: str, language: str) -> Dict[str, Any]:
        """Run code in the sandbox and return {"output": ...}."""


class CapabilitiesClient(CapabilityBackend):
    """CapabilityBackend backed by the /experiments endpoints."""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def get_relevant_docs(
        self,
        query: str,
        collection_name: str,
        num_docs: Optional[int] = None,
        sources: Optional[List[str]] = None,
    ) -> List[Any]:
        payload: Dict[str, Any] = {"query": query, "collectionName": collection_name}
        if num_docs is not None:
            payload["numDocs"] = num_docs
        if sources is not None:
            payload["sources"] = sources

        result = await self.backend.request(
            "POST", "/experiments/relevant-docs", json_body=payload
        )
        docs = result or []
        logger.info(
            "Relevant documents retrieved",
            collection_name=collection_name,
            count=len(docs),
        )
        return docs

    async def get_url_content(self, url: str, type: Optional[str] = None) -> str:
        result = await self.backend.request(
            "GET", "/experiments/url-content", params={"url": url, "type": type}
        )
        if result is None:
            return ""
        if isinstance(result, str):
            return result
        return json.dumps(result)

    async def execute_code(self, code: str, language: str) -> Dict[str, Any]:
        if language == UNKNOWN_LANGUAGE or language not in CODE_LANGUAGES:
            raise UnsupportedLanguageError(language)

        result = await self.backend.request(
            "POST",
            "/experiments/execute-code",
            json_body={"code": code, "language": language},
        )
        if isinstance(result, dict):
            return result
        return {"output": result}
