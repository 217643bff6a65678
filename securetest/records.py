"""
SecureTest - Scan Record Writer
Persists a finished tool run as a scan plus an activity-log entry.
"""

from typing import Any

from securetest.storage import Storage


SCAN_TYPE_RECON = "reconnaissance"
SCAN_TYPE_VULNERABILITY = "vulnerability"
SCAN_TYPE_WEB_AUTOMATION = "web-automation"


async def record_scan(storage: Storage, user_id: int, target: str, scan_type: str,
                      results: Any, action: str, details: str) -> int:
    """Store ``results`` as a completed scan and log the action. Returns the scan id.

    Fatal scan errors live inside ``results``; the scan is still "completed".
    """
    scan = await storage.create_scan(
        user_id=user_id,
        target=target,
        scan_type=scan_type,
        status="completed",
        findings=results,
    )
    await storage.create_activity_log(user_id=user_id, action=action, details=details)
    return scan["id"]
