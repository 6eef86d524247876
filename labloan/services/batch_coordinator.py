from __future__ import annotations

from flask import current_app

from labloan.errors import BatchError, LoanError, PartialWriteFailure
from labloan.services.transition_engine import StatusTransitionEngine

BEST_EFFORT = "best_effort"
ALL_OR_NOTHING = "all_or_nothing"
POLICIES = (BEST_EFFORT, ALL_OR_NOTHING)


class BatchCoordinator:
    """
    Applies one target status to every request of a batch, in submission order.

    best_effort: one committed transition per member; the first failure stops
    the run and earlier members stay transitioned.
    all_or_nothing: every member is staged in a single transaction, any
    failure rolls the whole batch back.
    """

    def __init__(self, engine: StatusTransitionEngine | None = None, policy: str | None = None):
        self.engine = engine or StatusTransitionEngine()
        self.policy = policy

    def _resolve_policy(self, policy):
        policy = policy or self.policy or current_app.config.get("BATCH_POLICY", BEST_EFFORT)
        if policy not in POLICIES:
            raise ValueError(f"Unknown batch policy: {policy}")
        return policy

    def apply_to_batch(self, batch_id: str, target_status: str, reviewed_by: str | None = None,
                       policy: str | None = None) -> int:
        policy = self._resolve_policy(policy)

        members = self.engine.requests.list_by_batch(batch_id)
        if not members:
            raise BatchError(batch_id, "No requests found in this batch")

        member_ids = [m.id for m in members]
        current_app.logger.info(
            f"[batch] {batch_id}: {target_status} x{len(member_ids)} ({policy})"
        )

        if policy == ALL_OR_NOTHING:
            return self._apply_all_or_nothing(batch_id, members, target_status, reviewed_by)
        return self._apply_sequential(batch_id, member_ids, target_status, reviewed_by)

    def _apply_sequential(self, batch_id, member_ids, target_status, reviewed_by) -> int:
        applied = 0
        for request_id in member_ids:
            try:
                self.engine.transition(request_id, target_status, reviewed_by=reviewed_by)
            except PartialWriteFailure as e:
                # status is committed, only the notification is missing
                current_app.logger.warning(f"[batch] {batch_id}: request={request_id} applied, {e}")
            except LoanError as e:
                current_app.logger.warning(
                    f"[batch] {batch_id}: stopped at request={request_id} after {applied} applied: {e}"
                )
                raise BatchError(
                    batch_id,
                    f"Batch {batch_id}: {applied} of {len(member_ids)} applied, request {request_id} failed: {e}",
                    applied=applied,
                    failed_request_id=request_id,
                    cause=e,
                ) from e
            applied += 1
        return applied

    def _apply_all_or_nothing(self, batch_id, members, target_status, reviewed_by) -> int:
        events = []
        current = None
        try:
            for member in members:
                current = member.id
                events.extend(self.engine.stage(member, target_status, reviewed_by=reviewed_by))
            self.engine.requests.commit()
        except LoanError as e:
            self.engine.requests.rollback()
            current_app.logger.warning(f"[batch] {batch_id}: rolled back, request={current} failed: {e}")
            raise BatchError(
                batch_id,
                f"Batch {batch_id}: nothing applied, request {current} failed: {e}",
                applied=0,
                failed_request_id=current,
                cause=e,
            ) from e
        except Exception:
            self.engine.requests.rollback()
            raise

        self.engine.notifier.dispatch(events)
        return len(members)
