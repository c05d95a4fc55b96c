"""Tenant subscription lifecycle: trial, upgrade, renewal, suspension."""
import calendar
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy import select

from smartpos.core.config import settings
from smartpos.core.enums import SubscriptionStatus
from smartpos.core.exceptions import BusinessRuleError, NotFoundError
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import get_logger
from smartpos.models.billing import SubscriptionHistory, SubscriptionPlan
from smartpos.models.tenant import Tenant
from smartpos.repositories import tenants as tenants_repo


logger = get_logger(__name__)

TRIAL_PLAN = "trial"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; every stored value is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def effective_end(tenant: Tenant) -> Optional[datetime]:
    return as_utc(tenant.trial_ends_at if tenant.is_trial else tenant.subscription_ends_at)


class SubscriptionService:
    """Subscription rules over the shared `tenants` table."""

    def __init__(self, executor: SchemaExecutor):
        self.executor = executor

    async def get_plans(self) -> Sequence[SubscriptionPlan]:
        result = await self.executor.query(
            None,
            select(SubscriptionPlan)
            .where(SubscriptionPlan.is_active.is_(True))
            .order_by(SubscriptionPlan.price_monthly),
        )
        return result.scalars().all()

    async def get_plan(self, plan_name: str) -> SubscriptionPlan:
        result = await self.executor.query(
            None, select(SubscriptionPlan).where(SubscriptionPlan.plan_name == plan_name)
        )
        plan = result.scalar_one_or_none()
        if plan is None:
            raise NotFoundError("Invalid subscription plan")
        return plan

    async def is_subscription_active(self, tenant_id: str) -> bool:
        """Active status and within end date + grace period.

        A tenant still marked active after its grace period is suspended here.
        """
        try:
            tenant = await tenants_repo.get_tenant(self.executor, tenant_id)
        except NotFoundError:
            return False

        if tenant.subscription_status != SubscriptionStatus.ACTIVE:
            return False

        end = effective_end(tenant)
        if end is None:
            # No end date recorded (legacy or seeded tenants)
            return True

        grace_days = tenant.grace_period_days
        if grace_days is None:
            grace_days = settings.GRACE_PERIOD_DAYS
        if utcnow() <= end + timedelta(days=grace_days):
            return True

        await self.suspend_tenant(tenant_id, "Payment overdue")
        return False

    async def start_trial(self, tenant_id: str) -> Tenant:
        now = utcnow()
        tenant = await tenants_repo.update_subscription(
            self.executor,
            tenant_id,
            {
                "subscription_plan": TRIAL_PLAN,
                "subscription_status": SubscriptionStatus.ACTIVE,
                "is_trial": True,
                "trial_ends_at": now + timedelta(days=settings.TRIAL_DAYS),
                "subscription_started_at": now,
                "grace_period_days": settings.GRACE_PERIOD_DAYS,
            },
        )
        await self.log_history(tenant_id, "trial_started", None, TRIAL_PLAN, "New tenant trial started")
        return tenant

    async def upgrade_subscription(self, tenant_id: str, plan_name: str, months: int = 1) -> Tenant:
        if plan_name == TRIAL_PLAN:
            raise BusinessRuleError("Cannot purchase trial plan")
        plan = await self.get_plan(plan_name)
        current = await tenants_repo.get_tenant(self.executor, tenant_id)
        now = utcnow()
        tenant = await tenants_repo.update_subscription(
            self.executor,
            tenant_id,
            {
                "subscription_plan": plan.plan_name,
                "subscription_status": SubscriptionStatus.ACTIVE,
                "is_trial": False,
                "subscription_ends_at": add_months(now, months),
                "monthly_price": plan.price_monthly,
                "subscription_started_at": as_utc(current.subscription_started_at) or now,
            },
        )
        await self.log_history(
            tenant_id,
            "subscription_upgraded",
            current.subscription_plan,
            plan.plan_name,
            f"Upgraded to {plan.display_name} for {months} month(s)",
        )
        logger.info(f"Tenant {tenant_id} upgraded to {plan.plan_name} for {months} month(s)")
        return tenant

    async def renew_subscription(self, tenant_id: str, months: int = 1) -> Tenant:
        current = await tenants_repo.get_tenant(self.executor, tenant_id)
        base = as_utc(current.subscription_ends_at) or utcnow()
        tenant = await tenants_repo.update_subscription(
            self.executor,
            tenant_id,
            {
                "subscription_ends_at": add_months(base, months),
                "subscription_status": SubscriptionStatus.ACTIVE,
            },
        )
        await self.log_history(
            tenant_id,
            "subscription_renewed",
            current.subscription_plan,
            current.subscription_plan,
            f"Renewed for {months} month(s)",
        )
        return tenant

    async def suspend_tenant(self, tenant_id: str, reason: str) -> Tenant:
        tenant = await tenants_repo.update_subscription(
            self.executor, tenant_id, {"subscription_status": SubscriptionStatus.SUSPENDED}
        )
        await self.log_history(tenant_id, "subscription_suspended", None, None, reason)
        logger.warning(f"Tenant {tenant_id} suspended: {reason}")
        return tenant

    async def cancel_subscription(self, tenant_id: str, reason: str, performed_by: str = "system") -> Tenant:
        tenant = await tenants_repo.update_subscription(
            self.executor,
            tenant_id,
            {"subscription_status": SubscriptionStatus.CANCELLED, "auto_renew": False},
        )
        await self.log_history(tenant_id, "subscription_cancelled", None, None, reason, performed_by)
        logger.warning(f"Tenant {tenant_id} cancelled subscription: {reason}")
        return tenant

    async def log_history(
        self,
        tenant_id: str,
        action: str,
        previous_plan: Optional[str],
        new_plan: Optional[str],
        reason: Optional[str],
        performed_by: str = "system",
    ) -> None:
        async def insert_entry(session) -> None:
            session.add(
                SubscriptionHistory(
                    tenant_id=tenant_id,
                    action=action,
                    previous_plan=previous_plan,
                    new_plan=new_plan,
                    reason=reason,
                    performed_by=performed_by,
                )
            )

        await self.executor.run_transaction(None, insert_entry)

    async def get_history(self, tenant_id: str) -> Sequence[SubscriptionHistory]:
        result = await self.executor.query(
            None,
            select(SubscriptionHistory)
            .where(SubscriptionHistory.tenant_id == tenant_id)
            .order_by(SubscriptionHistory.created_at.desc(), SubscriptionHistory.id.desc()),
        )
        return result.scalars().all()

    async def get_tenant_subscription(self, tenant_id: str) -> dict:
        tenant = await tenants_repo.get_tenant(self.executor, tenant_id)
        result = await self.executor.query(
            None,
            select(SubscriptionPlan).where(SubscriptionPlan.plan_name == tenant.subscription_plan),
        )
        plan = result.scalar_one_or_none()
        expires_at = effective_end(tenant)
        days_remaining = None
        if expires_at is not None:
            days_remaining = max(0, (expires_at - utcnow()).days)
        return {
            "subscription_plan": tenant.subscription_plan,
            "subscription_status": tenant.subscription_status,
            "is_trial": tenant.is_trial,
            "is_active": await self.is_subscription_active(tenant_id),
            "expires_at": expires_at,
            "days_remaining": days_remaining,
            "display_name": plan.display_name if plan else None,
            "features": plan.features if plan else [],
        }
