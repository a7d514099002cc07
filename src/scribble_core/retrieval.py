"""Lexical retrieval over a local, file-backed document collection."""

from __future__ import annotations

import abc
import dataclasses
import logging
import re
import threading
from pathlib import Path
from typing import Iterator, List, Optional, Set, Union

from .errors import PersistenceError
from .types import Document


LOGGER = logging.getLogger(__name__)

DOC_START = "---DOC_START---"
DOC_END = "---DOC_END---"
MIN_RELEVANCE = 0.1
MIN_TOKEN_LENGTH = 3

_NON_ALNUM = re.compile(r"[^0-9a-z]+")


def normalize_text(text: str) -> str:
    """Case-fold and collapse every non-alphanumeric run into one space."""

    return _NON_ALNUM.sub(" ", text.lower()).strip()


def tokenize(text: str) -> List[str]:
    return [token for token in normalize_text(text).split(" ") if len(token) >= MIN_TOKEN_LENGTH]


def similarity(query: str, document: str) -> float:
    """Share of distinct query tokens that occur anywhere in ``document``."""

    query_tokens: Set[str] = set(tokenize(query))
    if not query_tokens:
        return 0.0
    document_tokens = set(tokenize(document))
    if not document_tokens:
        return 0.0
    return len(query_tokens & document_tokens) / len(query_tokens)


class RetrievalService(abc.ABC):
    """Document store the orchestrator consults for context augmentation."""

    @abc.abstractmethod
    def search_documents(self, query: str, max_results: int = 5) -> List[Document]:
        ...

    @abc.abstractmethod
    def index_document(self, document: Document) -> bool:
        ...

    @abc.abstractmethod
    def remove_document(self, document_id: str) -> bool:
        ...

    @abc.abstractmethod
    def clear(self) -> None:
        ...

    def close(self) -> None:
        """Release resources; the default implementation has none."""


class LocalRetrievalIndex(RetrievalService):
    """In-memory, insertion-ordered index persisted to a single text file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._documents: List[Document] = []
        self._lock = threading.RLock()
        self.load()

    def __enter__(self) -> "LocalRetrievalIndex":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)

    # ------------------------------------------------------------------ #
    # RetrievalService
    # ------------------------------------------------------------------ #

    def search_documents(self, query: str, max_results: int = 5) -> List[Document]:
        with self._lock:
            scored = [(similarity(query, doc.content), doc) for doc in self._documents]

        # sorted() is stable, so equal scores keep insertion order.
        ranked = sorted(
            (pair for pair in scored if pair[0] > MIN_RELEVANCE),
            key=lambda pair: pair[0],
            reverse=True,
        )
        return [
            dataclasses.replace(doc, tags=list(doc.tags), relevance_score=score)
            for score, doc in ranked[: max(max_results, 0)]
        ]

    def index_document(self, document: Document) -> bool:
        stored = dataclasses.replace(document, tags=list(document.tags), relevance_score=0.0)
        with self._lock:
            for position, existing in enumerate(self._documents):
                if existing.id == stored.id:
                    self._documents[position] = stored
                    break
            else:
                self._documents.append(stored)
        return True

    def remove_document(self, document_id: str) -> bool:
        with self._lock:
            for position, existing in enumerate(self._documents):
                if existing.id == document_id:
                    del self._documents[position]
                    return True
        return False

    def clear(self) -> None:
        with self._lock:
            self._documents.clear()

    def close(self) -> None:
        self.save()

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def documents(self) -> List[Document]:
        with self._lock:
            return [dataclasses.replace(doc, tags=list(doc.tags)) for doc in self._documents]

    def get(self, document_id: str) -> Optional[Document]:
        with self._lock:
            for doc in self._documents:
                if doc.id == document_id:
                    return dataclasses.replace(doc, tags=list(doc.tags))
        return None

    def load(self) -> None:
        """Replace the in-memory collection with the file contents.

        A missing file yields an empty index; an unreadable one is logged and
        also yields an empty index.
        """

        try:
            parsed = list(_parse_records(self._read_lines()))
        except PersistenceError as exc:
            LOGGER.warning("Retrieval index %s not loaded: %s", self.path, exc)
            parsed = []

        # Later records win, keeping ids unique.
        documents: List[Document] = []
        positions = {}
        for doc in parsed:
            if doc.id in positions:
                documents[positions[doc.id]] = doc
            else:
                positions[doc.id] = len(documents)
                documents.append(doc)

        with self._lock:
            self._documents = documents
        LOGGER.debug("Loaded %d documents from %s", len(documents), self.path)

    def save(self) -> bool:
        """Write the collection to disk; failures are logged and reported as ``False``."""

        with self._lock:
            text = "".join(_format_record(doc) for doc in self._documents)
        try:
            self._write_text(text)
        except PersistenceError as exc:
            LOGGER.error("Retrieval index %s not saved: %s", self.path, exc)
            return False
        return True

    def _read_lines(self) -> List[str]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8", errors="replace", newline="") as handle:
                return handle.read().split("\n")
        except OSError as exc:
            raise PersistenceError(f"cannot read {self.path}: {exc}") from exc

    def _write_text(self, text: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8", newline="\n") as handle:
                handle.write(text)
        except OSError as exc:
            raise PersistenceError(f"cannot write {self.path}: {exc}") from exc


def _format_record(doc: Document) -> str:
    return (
        f"{DOC_START}\n"
        f"ID:{doc.id}\n"
        f"TITLE:{doc.title}\n"
        f"SOURCE:{doc.source}\n"
        f"CONTENT:{doc.content}\n"
        f"{DOC_END}\n"
    )


def _parse_records(lines: List[str]) -> Iterator[Document]:
    """Yield documents from index file lines, skipping anything malformed."""

    current: Optional[Document] = None
    iterator = iter(lines)
    for line in iterator:
        if line == DOC_START:
            current = Document(id="", content="")
        elif line == DOC_END:
            if current is not None:
                yield current
            current = None
        elif current is None:
            continue
        elif line.startswith("ID:"):
            current.id = line[3:]
        elif line.startswith("TITLE:"):
            current.title = line[6:]
        elif line.startswith("SOURCE:"):
            current.source = line[7:]
        elif line.startswith("CONTENT:"):
            content_lines = [line[8:]]
            for content_line in iterator:
                if content_line == DOC_END:
                    break
                content_lines.append(content_line)
            else:
                LOGGER.warning("Dropping unterminated index record %r", current.id)
                current = None
                continue
            current.content = "\n".join(content_lines)
            yield current
            current = None
