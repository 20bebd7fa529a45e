"""
profit_services.share_award_service -- Shares awarded for contributions.

Responsibility:
    Converts a contribution amount into shares under the account's tier
    policy (``profit_engines.shares``) and applies the award through the
    Shareholder Registry.  A share-capped tier that reaches its cap is
    flagged ``maxout_reached``.

Architecture position:
    Services -- stateful orchestration over engines + kernel ports.

Invariants enforced:
    - Share totals never exceed a tier's ``max_shares``.
    - Share-exempt tiers are never awarded shares.
    - Awards to one account are serialized within the process.

Audit relevance:
    - SHARES_AWARDED for every non-zero award.
    - MAXOUT_REACHED when a share cap is hit.
"""

from __future__ import annotations

from profit_engines.shares import DEFAULT_SHARE_UNIT, ShareAward, calculate_share_award
from profit_kernel.domain.dtos import AuditAction
from profit_kernel.domain.ports import AuditSink, ShareholderRegistry, TierPolicySource
from profit_kernel.exceptions import AccountNotFoundError
from profit_kernel.logging_config import get_logger
from profit_kernel.services.locks import KeyedLock

logger = get_logger("services.share_award")

ACCOUNT_ENTITY = "shareholder_account"

_ACCOUNT_LOCKS = KeyedLock()


class ShareAwardService:
    """Applies share awards to shareholder accounts."""

    def __init__(
        self,
        registry: ShareholderRegistry,
        policies: TierPolicySource,
        audit: AuditSink,
        share_unit: int = DEFAULT_SHARE_UNIT,
        locks: KeyedLock | None = None,
    ):
        self._registry = registry
        self._policies = policies
        self._audit = audit
        self._share_unit = share_unit
        self._locks = locks if locks is not None else _ACCOUNT_LOCKS

    def award_shares(self, account_id: str, amount: int) -> ShareAward:
        """
        Award shares for a contribution of ``amount`` minor units.

        Raises:
            AccountNotFoundError: Unknown account.
            UnknownTierError: Account tier not in the policy table.
            InvalidAmountError: Negative amount.
        """
        with self._locks.hold(f"account:{account_id}"):
            account = self._registry.get_account(account_id)
            if account is None:
                logger.warning("account_not_found", extra={"account_id": account_id})
                raise AccountNotFoundError(account_id)

            policy = self._policies.get_policy(account.business_tier)
            award = calculate_share_award(
                amount, policy, account.total_shares, self._share_unit
            )
            if award.awarded > 0:
                self._registry.set_total_shares(account_id, award.new_total)
                self._audit.record(
                    AuditAction.SHARES_AWARDED,
                    ACCOUNT_ENTITY,
                    account_id,
                    {
                        "tier": award.tier,
                        "amount": amount,
                        "awarded": award.awarded,
                        "new_total": award.new_total,
                    },
                )

            if award.capped and not account.maxout_reached:
                self._registry.set_maxout_reached(account_id, True)
                self._audit.record(
                    AuditAction.MAXOUT_REACHED,
                    ACCOUNT_ENTITY,
                    account_id,
                    {"tier": award.tier, "max_shares": policy.max_shares},
                )
                logger.info(
                    "share_cap_reached",
                    extra={"account_id": account_id, "max_shares": policy.max_shares},
                )

        logger.info(
            "shares_awarded",
            extra={
                "account_id": account_id,
                "tier": award.tier,
                "awarded": award.awarded,
                "new_total": award.new_total,
                "capped": award.capped,
            },
        )
        return award
