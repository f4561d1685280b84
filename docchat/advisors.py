"""Prompt augmenters applied in order before each model call."""

import dataclasses
from collections.abc import Iterable
from typing import Protocol

from .memory import ConversationMemory
from .models import PromptRequest
from .retriever import Retriever

QUESTION_ANSWER_TEMPLATE = """\
{query}

Context information is below, surrounded by ---------------------

---------------------
{question_answer_context}
---------------------

Given the context and provided history information and not prior knowledge,
reply to the user comment. If the answer is not in the context, inform
the user that you can't answer the question.
In the reply, avoid to reference code snippets contained in the context information.
Do not reformulate the question, just answer it directly.
Try to respond with the same language as the question.
If the question is not clear, ask for clarification.
At the end of your answer, if you have used the context information, give the chapters where the information comes from.
If the user wants you to show the sources, then add context information at the end of your answer.
"""


class PromptAugmenter(Protocol):
    def augment(self, request: PromptRequest) -> PromptRequest: ...


class MemoryAugmenter:
    """Adds the conversation window as prior messages."""

    def __init__(self, memory: ConversationMemory) -> None:
        self.memory = memory

    def augment(self, request: PromptRequest) -> PromptRequest:
        return dataclasses.replace(
            request, history=request.history + self.memory.snapshot()
        )


class RetrievalAugmenter:
    """Retrieves context for the question and wraps it around the user text."""

    def __init__(self, retriever: Retriever, template: str = QUESTION_ANSWER_TEMPLATE) -> None:
        self.retriever = retriever
        self.template = template

    def augment(self, request: PromptRequest) -> PromptRequest:
        context = self.retriever.retrieve(request.question)
        user_text = self.template.format(
            query=request.user_text,
            question_answer_context=context.text,
        )
        return dataclasses.replace(request, user_text=user_text, context=context)


def apply_augmenters(
    request: PromptRequest,
    augmenters: Iterable[PromptAugmenter],
) -> PromptRequest:
    for augmenter in augmenters:
        request = augmenter.augment(request)
    return request
