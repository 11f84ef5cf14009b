"""Gated send flow: evaluate, then deliver, then count."""

from loguru import logger

from src.rule_engine.application.action_dispatcher import ActionDispatcher
from src.rule_engine.application.rule_evaluator import RuleEvaluationService
from src.rule_engine.domain.exceptions import DispatchError
from src.rule_engine.domain.models import (
    DispatchReceipt,
    GateOutcome,
    GateStatus,
    NotificationRequest,
    is_dispatchable_action,
)
from src.rule_engine.infrastructure.logging import LoggingContext


class NotificationGate:
    """
    Runs a candidate notification through the rule engine before sending.

    A blocked notification is returned as a BLOCKED outcome. Delivery faults
    are raised as DispatchError so callers can tell them apart from a policy
    block. Stats are updated once per submitted notification as soon as at
    least one delivery went out, including when a later delivery fails.
    """

    def __init__(self, evaluation_service: RuleEvaluationService, dispatcher: ActionDispatcher):
        self.evaluation_service = evaluation_service
        self.dispatcher = dispatcher

    def submit(self, request: NotificationRequest) -> GateOutcome:
        """
        Evaluate and, unless blocked, deliver a notification.

        Applied rules with a dispatchable action are executed through the
        dispatcher, addressed with the request's own recipient, subject and
        sender unless the rule's action config overrides them. When there are
        none, the request's own message is sent on the request's channel.
        """
        with LoggingContext(recipient_id=request.recipient_id):
            result = self.evaluation_service.evaluate(request.recipient_id, request.content, request.variables)
            if result.blocked:
                logger.warning(f"Notification for {request.recipient_id} blocked: {result.block_reason}")
                return GateOutcome(status=GateStatus.BLOCKED, evaluation=result)

            actionable = [rule for rule in result.applied_rules if is_dispatchable_action(rule.action_type)]
            receipts: list[DispatchReceipt] = []
            try:
                if actionable:
                    for rule in actionable:
                        receipts.append(
                            self.dispatcher.dispatch(rule, request.content, request.variables, request)
                        )
                else:
                    receipts.append(self.dispatcher.deliver(self.dispatcher.build_request_message(request)))
            except DispatchError as e:
                if receipts:
                    logger.error(
                        f"Notification for {request.recipient_id} partially sent "
                        f"({len(receipts)} of {len(actionable)} deliveries): {e.message}"
                    )
                raise
            finally:
                # Anything already delivered counts, even if a later action failed
                if receipts:
                    self.evaluation_service.update_stats(request.recipient_id)

            logger.info(f"Notification for {request.recipient_id} sent ({len(receipts)} deliveries)")
            return GateOutcome(status=GateStatus.SENT, evaluation=result, receipts=tuple(receipts))
