"""Mutation wrapper.

Runs a write, applies the invalidation rule registered for its kind, then
reports the outcome to the user:

    PENDING -> EXECUTING -> SUCCEEDED -> INVALIDATING -> REPORTED
                         \\-> FAILED -> REPORTED

Invalidation always completes before the success notification is emitted,
so any refresh triggered by the notification sees post-invalidation state.
A failed write invalidates nothing.

Example:
    update_task = create_mutation(
        MutationConfig(
            mutation_fn=api.update_task,
            kind="task.update",
            success_message="Task updated.",
            log_prefix="[UPDATE_TASK]",
        ),
        graph=runtime.graph,
        notifier=runtime.notifier,
    )
    result = await update_task.run({"param": {"taskId": "t1"}, "json": {...}})
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from tessera.errors import MutationError
from tessera.invalidation.notifier import Notifier
from tessera.invalidation.rules import InvalidationGraph, InvalidationReport
from tessera.observability.metrics import record_mutation
from tessera.query.client import QueryClient
from tessera.query.constants import RetryConfig

logger = logging.getLogger(__name__)

TData = TypeVar("TData")
TVariables = TypeVar("TVariables")

DEFAULT_SUCCESS_MESSAGE = "Operation completed successfully"
DEFAULT_ERROR_MESSAGE = "Operation failed"
DEFAULT_LOG_PREFIX = "[MUTATION]"


class MutationState(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    INVALIDATING = "invalidating"
    FAILED = "failed"
    REPORTED = "reported"


@dataclass
class MutationConfig(Generic[TData, TVariables]):
    """How to run, invalidate and report one kind of write.

    Attributes:
        mutation_fn: The write itself
        kind: Invalidation rule to apply on success (None skips the graph)
        success_message: Text or callable(data, variables) for the success notification
        error_message: Text or callable(error) for the failure notification
        on_success_invalidate: Extra ad hoc invalidation(query_client, data, variables)
        on_success: Hook run after the success notification
        on_error: Hook run after the failure notification
        log_prefix: Prefix for the failure log line
        retry: Extra attempts before the write counts as failed
    """

    mutation_fn: Callable[[TVariables], Awaitable[TData]]
    kind: str | None = None
    success_message: str | Callable[[TData, TVariables], str] | None = None
    error_message: str | Callable[[Exception], str] | None = None
    on_success_invalidate: Callable[[QueryClient, TData, TVariables], None] | None = None
    on_success: Callable[[TData, TVariables], Any] | None = None
    on_error: Callable[[Exception, TVariables], Any] | None = None
    log_prefix: str = DEFAULT_LOG_PREFIX
    show_success_notification: bool = True
    show_error_notification: bool = True
    retry: int = RetryConfig.MUTATIONS


@dataclass
class MutationResult(Generic[TData]):
    """Outcome of one mutation invocation."""

    state: MutationState = MutationState.PENDING
    data: TData | None = None
    error: Exception | None = None
    invalidation: InvalidationReport | None = None
    transitions: list[MutationState] = field(default_factory=lambda: [MutationState.PENDING])

    @property
    def succeeded(self) -> bool:
        return self.error is None and MutationState.SUCCEEDED in self.transitions


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Mutation(Generic[TData, TVariables]):
    """A configured write bound to an invalidation graph and a notifier."""

    def __init__(
        self,
        config: MutationConfig[TData, TVariables],
        graph: InvalidationGraph,
        notifier: Notifier,
    ) -> None:
        self.config = config
        self.graph = graph
        self.notifier = notifier

    @property
    def _metric_kind(self) -> str:
        return self.config.kind or "anonymous"

    def _transition(self, result: MutationResult[TData], state: MutationState) -> None:
        result.state = state
        result.transitions.append(state)
        logger.debug(f"{self.config.log_prefix} -> {state.value}")

    async def _execute(self, variables: TVariables) -> TData:
        attempts = max(self.config.retry, 0) + 1
        attempt = 1
        while True:
            try:
                data = await self.config.mutation_fn(variables)
                if isinstance(data, Exception):
                    # Writes may report failure by returning the error
                    raise data
                return data
            except Exception as e:
                if attempt >= attempts:
                    raise
                logger.warning(
                    f"{self.config.log_prefix} attempt {attempt}/{attempts} failed: {e}"
                )
                attempt += 1

    def _success_message(self, data: TData, variables: TVariables) -> str:
        message = self.config.success_message
        if callable(message):
            return message(data, variables)
        return message or DEFAULT_SUCCESS_MESSAGE

    def _error_message(self, error: Exception) -> str:
        message = self.config.error_message
        if callable(message):
            return message(error)
        return message or str(error) or DEFAULT_ERROR_MESSAGE

    def _invalidate(self, data: TData, variables: TVariables) -> InvalidationReport | None:
        report = None
        if self.config.kind is not None:
            report = self.graph.apply(self.config.kind, result=data, variables=variables)
        if self.config.on_success_invalidate is not None:
            self.config.on_success_invalidate(self.graph.query_client, data, variables)
        return report

    async def run(
        self, variables: TVariables = None, raise_on_error: bool = False  # type: ignore[assignment]
    ) -> MutationResult[TData]:
        """Execute the mutation and report its outcome.

        Args:
            variables: Arguments passed to mutation_fn
            raise_on_error: Re-raise failures as MutationError after reporting

        Returns:
            MutationResult ending in REPORTED
        """
        result: MutationResult[TData] = MutationResult()
        self._transition(result, MutationState.EXECUTING)

        try:
            data = await self._execute(variables)
        except Exception as error:
            result.error = error
            self._transition(result, MutationState.FAILED)
            logger.error(f"{self.config.log_prefix}: {error}", exc_info=error)
            record_mutation(self._metric_kind, "failed")

            if self.config.show_error_notification:
                self.notifier.error(self._error_message(error))
            if self.config.on_error is not None:
                await _maybe_await(self.config.on_error(error, variables))

            self._transition(result, MutationState.REPORTED)
            if raise_on_error:
                raise MutationError(self.config.kind, error) from error
            return result

        result.data = data
        self._transition(result, MutationState.SUCCEEDED)
        record_mutation(self._metric_kind, "succeeded")

        self._transition(result, MutationState.INVALIDATING)
        try:
            result.invalidation = self._invalidate(data, variables)
        except Exception:
            # The write is committed; report it even if clearing caches failed
            logger.exception(f"{self.config.log_prefix} invalidation failed")

        if self.config.show_success_notification:
            self.notifier.success(self._success_message(data, variables))
        if self.config.on_success is not None:
            await _maybe_await(self.config.on_success(data, variables))

        self._transition(result, MutationState.REPORTED)
        return result

    async def __call__(self, variables: TVariables = None) -> MutationResult[TData]:  # type: ignore[assignment]
        return await self.run(variables)


def create_mutation(
    config: MutationConfig[TData, TVariables],
    graph: InvalidationGraph,
    notifier: Notifier,
) -> Mutation[TData, TVariables]:
    """Build a standardized mutation from its config."""
    return Mutation(config, graph, notifier)
