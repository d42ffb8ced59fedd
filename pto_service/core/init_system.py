import logging
from pto_service.database import session_scope
from pto_service.services.policy_store import PolicyStore

logger = logging.getLogger(__name__)

def init_system_data():
    """
    Seeds the default leave-type catalogue on an empty or partial `pto_types` table.
    Existing policies are never overwritten, so admin patches survive restarts.
    """
    with session_scope() as db:
        created = PolicyStore(db).seed_defaults()
        if created:
            logger.info(f"✓ Seeded {created} default PTO type(s)")
        else:
            logger.info("System initialization check: PTO types already present.")
