"""Prompt templates and use-case tags for the convenience operations."""

from __future__ import annotations

USE_CASE_TEXT_GENERATION = "text_generation"
USE_CASE_SUMMARIZATION = "summarization"
USE_CASE_KEY_EXTRACTION = "key_extraction"
USE_CASE_QUESTION_ANSWERING = "question_answering"

SUMMARY_TEMPLATE = "Please provide a concise summary of the following content:\n\n{content}"
KEY_POINTS_TEMPLATE = "Extract the key points from the following content as a bulleted list:\n\n{content}"
QUESTION_WITH_CONTEXT_TEMPLATE = (
    "Based on the following context, answer the question:\n\nContext: {context}\n\nQuestion: {question}"
)

RAG_HEADER = "Context from relevant documents:\n\n"
RAG_EXCERPT_CHARS = 200
RAG_MAX_DOCUMENTS = 3
RAG_ADDITIONAL_CONTEXT = "Additional context:\n{context}\n\n"


def rag_excerpt_line(title: str, content: str) -> str:
    excerpt = content[:RAG_EXCERPT_CHARS]
    if len(content) > RAG_EXCERPT_CHARS:
        excerpt += "..."
    return f"- {title}: {excerpt}\n\n"
