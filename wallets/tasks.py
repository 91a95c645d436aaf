import logging

from celery import shared_task

from wallets.models import Account
from wallets.services import ReconciliationService

logger = logging.getLogger(__name__)


@shared_task(bind=True, acks_late=True, max_retries=3, default_retry_delay=30)
def reconcile_account(self, account_uuid: str):
    """
    Compare one account's balance with the replay of its ledger entries.

    Uses acks_late=True so a worker crash mid-check leaves the task queued.
    """
    try:
        result = ReconciliationService.check_account(account_uuid)
        return {
            "account_uuid": result.account_uuid,
            "balance": result.balance,
            "replayed": result.replayed,
            "ok": result.ok,
        }

    except Account.DoesNotExist:
        logger.error("Reconciliation skipped, account %s not found.", account_uuid)
        return {"account_uuid": account_uuid, "ok": False, "status": "NOT_FOUND"}

    except Exception as exc:
        logger.exception(
            "Unexpected error reconciling account=%s: %s", account_uuid, str(exc)
        )
        raise self.retry(exc=exc, countdown=2**self.request.retries * 10)


@shared_task
def reconcile_all_accounts():
    """
    Periodic task: replay the ledger of every account and report mismatches.

    Runs via Celery Beat every LEDGER_RECONCILE_INTERVAL seconds.
    """
    mismatches = ReconciliationService.check_all()

    if mismatches:
        logger.error(
            "Found %d account(s) whose balance disagrees with the ledger: %s",
            len(mismatches),
            ", ".join(m.account_uuid for m in mismatches),
        )

    return {
        "checked": Account.objects.count(),
        "mismatches": [m.account_uuid for m in mismatches],
    }
