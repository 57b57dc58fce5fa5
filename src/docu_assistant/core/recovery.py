"""
Error classification and recovery.

``handle_error`` maps a failure onto the fixed taxonomy and returns the menu of
things the user (or caller) can do next. ``attempt_recovery`` carries out one
of those things, once. Neither method raises.
"""

import inspect
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from .types import ErrorContext, ErrorType, RecoveryAction, RecoveryOptions, RecoveryResult
from ..utils.logging import get_logger

RetryableOperation = Callable[[], Union[Any, Awaitable[Any]]]

OFFLINE_FALLBACKS = ["offline_guidance", "template_only", "manual_editing"]

OFFLINE_GUIDANCE = {
    "prd": (
        "Work through the PRD sections in order: state the problem, name the target users, "
        "list goals with measurable outcomes, then describe the key features."
    ),
    "requirements": (
        "Write each requirement as 'WHEN <trigger> THE SYSTEM SHALL <response>'. "
        "Separate functional requirements from constraints."
    ),
    "design": (
        "Sketch the main components first, then describe the data flow between them "
        "and the interfaces each one exposes."
    ),
    "specification": (
        "Break the design into implementable tasks, each with inputs, outputs and a test you "
        "could write for it."
    ),
}
GENERIC_GUIDANCE = (
    "The assistant is unavailable right now. You can keep editing the document directly; "
    "the template's placeholders show what each section still needs."
)

MAX_ERROR_HISTORY = 50


class ErrorRecoveryClassifier:
    """Classifies failures and derives retry/modify/fallback guidance."""

    def __init__(
        self,
        network_retry_delay_seconds: float = 2.0,
        rate_limit_retry_delay_seconds: float = 30.0,
    ):
        self.logger = get_logger(__name__)
        self.network_retry_delay_seconds = network_retry_delay_seconds
        self.rate_limit_retry_delay_seconds = rate_limit_retry_delay_seconds
        self._error_history: Dict[str, List[ErrorContext]] = {}
        self._retryable_operations: Dict[str, RetryableOperation] = {}

    def handle_error(self, session_id, error_context) -> RecoveryOptions:
        try:
            context = self._coerce_context(error_context)
            if context is None:
                return self._unclassified("unrecognised error")

            self._record(session_id, context)
            options = self._classify(context)
            self.logger.info(
                f"Classified {context.type.value} error: retry={options.can_retry} "
                f"modify={options.can_modify} fallback={options.can_fallback}",
                extra={"session_id": self._session_key(session_id)},
            )
            return options
        except Exception as e:
            self.logger.error(f"Error classification failed: {e}", exc_info=True)
            return self._unclassified(str(e))

    def _classify(self, context: ErrorContext) -> RecoveryOptions:
        error_type = context.type

        if error_type == ErrorType.NETWORK:
            return RecoveryOptions(
                can_retry=True, can_modify=False, can_fallback=True,
                suggested_actions=["retry", "check_connection", "use_offline_mode"],
                fallback_options=list(OFFLINE_FALLBACKS),
                retry_delay_seconds=self.network_retry_delay_seconds,
                message=f"Connection problem: {context.message}",
            )

        if error_type == ErrorType.RATE_LIMIT:
            return RecoveryOptions(
                can_retry=True, can_modify=False, can_fallback=True,
                suggested_actions=["wait_and_retry", "use_offline_mode"],
                fallback_options=list(OFFLINE_FALLBACKS),
                retry_delay_seconds=self.rate_limit_retry_delay_seconds,
                message=(
                    f"The model is rate limited. Wait about "
                    f"{int(self.rate_limit_retry_delay_seconds)}s before retrying."
                ),
            )

        if error_type == ErrorType.AUTH:
            return RecoveryOptions(
                can_retry=False, can_modify=True, can_fallback=False,
                suggested_actions=["check_credentials", "update_configuration"],
                message=f"The model provider rejected the request: {context.message}",
            )

        if error_type == ErrorType.VALIDATION:
            return RecoveryOptions(
                can_retry=False, can_modify=True, can_fallback=False,
                suggested_actions=["modify_input", "clarify_request"],
                message=context.message,
            )

        if error_type == ErrorType.OFFLINE:
            return RecoveryOptions(
                can_retry=False, can_modify=False, can_fallback=True,
                suggested_actions=["use_offline_mode"],
                fallback_options=list(OFFLINE_FALLBACKS),
                message="Working offline. Guidance is available without the model.",
            )

        # execution: the recoverable hint decides
        if context.recoverable:
            return RecoveryOptions(
                can_retry=True, can_modify=False, can_fallback=True,
                suggested_actions=["retry", "restart_conversation"],
                fallback_options=["manual_chat", "template_only"],
                message=context.message,
            )
        return RecoveryOptions(
            can_retry=False, can_modify=True, can_fallback=False,
            suggested_actions=["modify_input", "restart_conversation", "contact_support"],
            message=context.message,
        )

    def _unclassified(self, reason: str) -> RecoveryOptions:
        return RecoveryOptions(
            can_retry=False, can_modify=False, can_fallback=False,
            suggested_actions=["restart_conversation", "contact_support"],
            message=f"Could not classify the error ({reason})",
        )

    def register_retryable_operation(self, session_id, operation: RetryableOperation) -> None:
        """Remember the operation a later ``retry`` for this session should re-run."""
        self._retryable_operations[self._session_key(session_id)] = operation

    def clear_retryable_operation(self, session_id) -> None:
        self._retryable_operations.pop(self._session_key(session_id), None)

    async def attempt_recovery(
        self,
        session_id,
        error_context,
        action,
        operation: Optional[RetryableOperation] = None,
    ) -> RecoveryResult:
        """Run one recovery action. ``retry`` invokes the operation exactly once."""
        action_name = action.value if isinstance(action, RecoveryAction) else str(action or "")
        try:
            recovery_action = RecoveryAction(action_name.strip().lower())
        except ValueError:
            return RecoveryResult(False, action_name, f"Unknown recovery action '{action_name}'")

        context = self._coerce_context(error_context)
        if context is None:
            return RecoveryResult(False, recovery_action.value, "No classifiable error to recover from")

        options = self._classify(context)
        key = self._session_key(session_id)

        if recovery_action == RecoveryAction.RETRY:
            return await self._retry(key, context, options, operation)
        if recovery_action == RecoveryAction.FALLBACK:
            return self._fallback(context, options)
        return self._modify(context, options)

    async def _retry(
        self,
        key: str,
        context: ErrorContext,
        options: RecoveryOptions,
        operation: Optional[RetryableOperation],
    ) -> RecoveryResult:
        if not options.can_retry:
            return RecoveryResult(
                False, "retry",
                f"{context.type.value} errors cannot be retried; "
                f"try: {', '.join(options.suggested_actions)}",
            )

        operation = operation or self._retryable_operations.get(key)
        if operation is None:
            return RecoveryResult(False, "retry", "No operation is registered to retry")

        try:
            outcome = operation()
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as e:
            self.logger.warning(f"Retry failed for session {key}: {e}")
            return RecoveryResult(False, "retry", f"Retry failed: {e}", data={"error": e})

        self._retryable_operations.pop(key, None)
        self.logger.info(f"Retry succeeded for session {key}")
        return RecoveryResult(True, "retry", "Operation retried successfully", data=outcome)

    def _fallback(self, context: ErrorContext, options: RecoveryOptions) -> RecoveryResult:
        if not options.can_fallback:
            return RecoveryResult(False, "fallback", f"No fallback is available for {context.type.value} errors")

        template_id = context.details.get("template_id")
        guidance = OFFLINE_GUIDANCE.get(template_id, GENERIC_GUIDANCE)
        return RecoveryResult(
            True, "fallback", guidance,
            data={"fallback_options": options.fallback_options or []},
        )

    def _modify(self, context: ErrorContext, options: RecoveryOptions) -> RecoveryResult:
        if not options.can_modify:
            return RecoveryResult(False, "modify", f"Changing the input will not fix a {context.type.value} error")
        return RecoveryResult(True, "modify", "Ready for modified input. Adjust your request and send it again.")

    def get_error_history(self, session_id) -> List[ErrorContext]:
        return list(self._error_history.get(self._session_key(session_id), []))

    def _record(self, session_id, context: ErrorContext) -> None:
        history = self._error_history.setdefault(self._session_key(session_id), [])
        history.append(context)
        del history[:-MAX_ERROR_HISTORY]

    @staticmethod
    def _session_key(session_id) -> str:
        if isinstance(session_id, str) and session_id.strip():
            return session_id.strip()
        return "default"

    @staticmethod
    def _coerce_context(error_context) -> Optional[ErrorContext]:
        """Accept an ErrorContext, a mapping, or an exception."""
        if isinstance(error_context, ErrorContext):
            error_type = ErrorType.parse(error_context.type)
            if error_type is None:
                return None
            if error_type is not error_context.type or error_context.details is None:
                return ErrorContext(
                    type=error_type,
                    message=str(error_context.message or ""),
                    recoverable=bool(error_context.recoverable),
                    details=dict(error_context.details or {}),
                )
            return error_context
        if isinstance(error_context, BaseException):
            return ErrorContext.from_exception(error_context)
        if isinstance(error_context, Mapping):
            error_type = ErrorType.parse(error_context.get("type"))
            if error_type is None:
                return None
            details = error_context.get("details")
            return ErrorContext(
                type=error_type,
                message=str(error_context.get("message") or ""),
                recoverable=bool(error_context.get("recoverable", False)),
                details=dict(details) if isinstance(details, Mapping) else {},
            )
        return None
