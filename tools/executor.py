"""
Tool Executor
-------------
Runs a batch of tool calls and turns every outcome into a ToolResult.

Pipeline per call:
    1. Resolve the tool              (unknown   -> error result)
    2. Check group authorization     (inactive  -> error result)
    3. Merge presets under the payload, caller values win
    4. Validate against the composed schema (invalid -> error result)
    5. Invoke with timeout and retry (failure   -> error result)

Rules:
- A batch of N calls always yields N results, in input order
- Parallel mode runs calls as concurrent tasks; sequential mode runs them
  one after another and never stops early
- Nothing per-call is ever raised to the caller; only configuration
  errors (duplicate call ids) raise
- Every error text starts with "Error: "; no exception type leaks
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional
import asyncio
import logging
import time

from core.errors import (
    DuplicateCallError, ToolError, error_message,
    create_unauthorized_error, create_unknown_tool_error, create_validation_error,
    log_tool_error,
)
from core.state_machine import InvocationLifecycle, InvocationState, TransitionListener
from infra.config import ExecutionConfig, TOOL_DEFAULTS, ToolkitConfig
from infra.logging import BatchContext, log_batch_end

from .context import ExecutionContext
from .groups import ToolGroupManager
from .models import ToolCall, ToolResult
from .registry import RegisteredTool, ToolRegistry
from .tool import reset_worker_pool, set_worker_pool
from .validator import validate_input


class ToolExecutor:
    """
    Batch executor over one registry and one group manager.

    Synchronous handlers run on a thread pool sized by
    ToolkitConfig.max_workers (the event loop's default pool when unset).
    """

    def __init__(
        self,
        registry: ToolRegistry,
        groups: ToolGroupManager,
        config: Optional[ToolkitConfig] = None,
        listeners: Optional[List[TransitionListener]] = None
    ):
        self.registry = registry
        self.groups = groups
        self.config = config or ToolkitConfig()
        self._listeners: List[TransitionListener] = listeners if listeners is not None else []
        self._logger = logging.getLogger("toolbelt.tools.executor")
        self._pool: Optional[ThreadPoolExecutor] = None

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    def _get_pool(self) -> Optional[ThreadPoolExecutor]:
        if self.config.max_workers is None:
            return None
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=self.config.max_workers,
                thread_name_prefix="toolbelt-worker",
            )
        return self._pool

    def shutdown(self) -> None:
        """Release the worker pool, if one was created."""
        if self._pool is not None:
            self._pool.shutdown(wait=False)
            self._pool = None

    def effective_config(self, execution: Optional[ExecutionConfig] = None) -> ExecutionConfig:
        """call site > toolkit > TOOL_DEFAULTS"""
        toolkit_level = ExecutionConfig.merge(self.config.execution, TOOL_DEFAULTS)
        return ExecutionConfig.merge(execution, toolkit_level)

    # =========================================================================
    # Batch
    # =========================================================================

    async def execute_all(
        self,
        calls: Iterable[ToolCall],
        context: Optional[ExecutionContext] = None,
        parallel: Optional[bool] = None,
        execution: Optional[ExecutionConfig] = None
    ) -> List[ToolResult]:
        """
        Execute a batch.

        Raises:
            DuplicateCallError: If two calls share a call id
        """
        calls = list(calls)
        self._check_unique_ids(calls)

        parallel = self.config.parallel if parallel is None else parallel
        context = context or ExecutionContext.empty()
        config = self.effective_config(execution)

        with BatchContext() as batch_id:
            start = time.perf_counter()
            self._logger.debug(
                f"Executing {len(calls)} tool calls ({'parallel' if parallel else 'sequential'})"
            )

            token = set_worker_pool(self._get_pool())
            try:
                if parallel:
                    results = await self._execute_parallel(calls, context, config)
                else:
                    results = []
                    for call in calls:
                        results.append(await self.execute(call, context, config))
            finally:
                reset_worker_pool(token)

            elapsed_ms = (time.perf_counter() - start) * 1000
            failed = sum(1 for r in results if r.is_error)
            log_batch_end(batch_id, total=len(results), failed=failed, execution_time_ms=elapsed_ms)

        return results

    async def _execute_parallel(
        self,
        calls: List[ToolCall],
        context: ExecutionContext,
        config: ExecutionConfig
    ) -> List[ToolResult]:
        """Run every call as its own task; results keyed back by position."""
        tasks = [asyncio.create_task(self.execute(call, context, config)) for call in calls]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results: List[ToolResult] = []
        for call, outcome in zip(calls, outcomes):
            if isinstance(outcome, BaseException):
                # execute() only lets cancellation escape
                error = ToolError.from_exception(outcome, tool_name=call.name, call_id=call.call_id)
                log_tool_error(self._logger, error)
                outcome = ToolResult.error(call.call_id, call.name, error)
            results.append(outcome)
        return results

    def _check_unique_ids(self, calls: List[ToolCall]) -> None:
        seen = set()
        duplicates = []
        for call in calls:
            if call.call_id in seen and call.call_id not in duplicates:
                duplicates.append(call.call_id)
            seen.add(call.call_id)
        if duplicates:
            raise DuplicateCallError(duplicates)

    # =========================================================================
    # Single call
    # =========================================================================

    async def execute(
        self,
        call: ToolCall,
        context: Optional[ExecutionContext] = None,
        execution: Optional[ExecutionConfig] = None
    ) -> ToolResult:
        """
        Execute one call through the full pipeline.

        Never raises, except when the surrounding task itself is cancelled.
        """
        lifecycle = InvocationLifecycle(call.call_id, call.name, self._listeners)
        context = context or ExecutionContext.empty()
        config = self.effective_config(execution)

        entry = self.registry.get_registered(call.name)
        if entry is None:
            return self._reject(call, lifecycle, create_unknown_tool_error(call.name, call.call_id))

        if not self.groups.is_callable(call.name):
            return self._reject(call, lifecycle, create_unauthorized_error(call.name, call.call_id))

        lifecycle.transition(InvocationState.AUTHORIZED)

        try:
            payload = entry.merge_input(call.input)
            reason = validate_input(payload, entry.composed_schema)
        except Exception as e:
            # Malformed schema or presets; still one result for this call
            reason = f"invalid parameter schema: {error_message(e)}"
        if reason:
            return self._reject(
                call, lifecycle, create_validation_error(call.name, reason, call.call_id)
            )

        lifecycle.transition(InvocationState.DISPATCHED)
        start = time.perf_counter()

        try:
            output = await self._invoke(entry, payload, context, config)
            result = ToolResult.from_output(call.call_id, call.name, output)
        except asyncio.CancelledError as e:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                lifecycle.transition(InvocationState.FAILED, "cancelled")
                raise
            error = ToolError.from_exception(e, tool_name=call.name, call_id=call.call_id)
        except Exception as e:
            error = ToolError.from_exception(e, tool_name=call.name, call_id=call.call_id)
        else:
            elapsed_ms = (time.perf_counter() - start) * 1000
            lifecycle.transition(InvocationState.COMPLETED)
            self._logger.debug(
                f"Executed {call.name} in {elapsed_ms:.1f}ms",
                extra={
                    "tool_name": call.name,
                    "call_id": call.call_id,
                    "execution_time_ms": elapsed_ms,
                    "success": True,
                },
            )
            return result

        lifecycle.transition(InvocationState.FAILED, error.message)
        log_tool_error(self._logger, error)
        return ToolResult.error(call.call_id, call.name, error)

    def _reject(
        self,
        call: ToolCall,
        lifecycle: InvocationLifecycle,
        error: ToolError
    ) -> ToolResult:
        lifecycle.transition(InvocationState.REJECTED, error.category.name.lower())
        log_tool_error(self._logger, error)
        return ToolResult.error(call.call_id, call.name, error)

    async def _invoke(
        self,
        entry: RegisteredTool,
        payload: Dict[str, Any],
        context: ExecutionContext,
        config: ExecutionConfig
    ) -> Any:
        """Call the tool, retrying failed attempts with exponential backoff."""
        attempt = 1
        while True:
            try:
                return await self._invoke_once(entry, payload, context, config.timeout_seconds)
            except Exception as e:
                if not config.should_retry(e, attempt):
                    raise
                delay = config.backoff_delay(attempt)
                self._logger.warning(
                    f"Attempt {attempt} of {entry.name} failed: {e}; retrying in {delay:.2f}s"
                )
                await asyncio.sleep(delay)
                attempt += 1

    async def _invoke_once(
        self,
        entry: RegisteredTool,
        payload: Dict[str, Any],
        context: ExecutionContext,
        timeout: Optional[float]
    ) -> Any:
        scope = asyncio.timeout(timeout)
        try:
            async with scope:
                return await entry.tool.call(dict(payload), context)
        except TimeoutError:
            if scope.expired():
                raise TimeoutError(f"Tool execution timeout after {timeout:g}s") from None
            raise
