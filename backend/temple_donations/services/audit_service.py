"""
Audit Service — per-transaction, hash-chained record of donation events.

Each entry stores its redacted payload, so the chain can be re-derived from
the rows themselves: editing a payload, an action or a link breaks it.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from temple_donations.models.audit import AuditLog
from temple_donations.utils.hashing import generate_chain_hash

logger = logging.getLogger(__name__)

# Gateway signature material; dropped before anything is hashed or stored.
_REDACTED_KEYS = frozenset({"hash", "salt", "key", "card_token", "cardnum"})


def _redact(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {k: v for k, v in (data or {}).items() if k not in _REDACTED_KEYS}


def _entry_hash(action: str, payload: Dict[str, Any], previous_hash: str) -> str:
    return generate_chain_hash({"action": action, "payload": payload}, previous_hash)


class AuditService:
    """Append and check audit entries for a txnid."""

    @staticmethod
    def log(
        db: Session,
        txnid: str,
        action: str,
        payload: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """Append one entry to the txnid's chain and commit it.

        Args:
            db: Database session.
            txnid: Donation transaction id the event belongs to.
            action: Event name, e.g. DONATION_INITIATED or CALLBACK_REJECTED.
            payload: Event data. Keys in ``_REDACTED_KEYS`` are removed.
            ip_address: Caller IP, when the event came from a request.
            user_agent: Caller user agent, truncated to the column size.
            metadata: Extra context, stored but not chained.
        """
        previous = AuditService.last_entry(db, txnid)
        previous_hash = previous.payload_hash if previous else ""
        clean = _redact(payload)

        entry = AuditLog(
            txnid=txnid,
            action=action,
            payload=clean,
            payload_hash=_entry_hash(action, clean, previous_hash),
            previous_hash=previous_hash,
            ip_address=ip_address,
            user_agent=(user_agent or "")[:256] or None,
            log_metadata=_redact(metadata),
            timestamp=datetime.utcnow(),
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)

        logger.debug("Audit %s %s", txnid, action)
        return entry

    @staticmethod
    def last_entry(db: Session, txnid: str) -> Optional[AuditLog]:
        return (
            db.query(AuditLog)
            .filter(AuditLog.txnid == txnid)
            .order_by(AuditLog.id.desc())
            .first()
        )

    @staticmethod
    def get_trail(db: Session, txnid: str) -> List[AuditLog]:
        """All entries for a txnid, oldest first."""
        return (
            db.query(AuditLog)
            .filter(AuditLog.txnid == txnid)
            .order_by(AuditLog.id.asc())
            .all()
        )

    @staticmethod
    def verify_chain(db: Session, txnid: str) -> Dict[str, Any]:
        """Recompute every link of a txnid's chain.

        Returns:
            ``valid``, ``total_entries`` and, for a broken chain, the id of the
            first bad entry in ``broken_at`` plus a ``message``.
        """
        entries = AuditService.get_trail(db, txnid)
        previous_hash = ""

        for entry in entries:
            if entry.previous_hash != previous_hash:
                reason = "link does not match the previous entry"
            elif entry.payload_hash != _entry_hash(entry.action, entry.payload or {}, previous_hash):
                reason = "contents were modified"
            else:
                previous_hash = entry.payload_hash
                continue

            logger.warning("Audit chain for %s broken at entry %s: %s", txnid, entry.id, reason)
            return {
                "valid": False,
                "total_entries": len(entries),
                "broken_at": entry.id,
                "message": f"Entry {entry.id} ({entry.action}): {reason}",
            }

        return {"valid": True, "total_entries": len(entries), "broken_at": None}
