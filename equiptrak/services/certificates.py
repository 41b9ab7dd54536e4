import re

from sqlalchemy.orm import Session

from equiptrak.core.config import settings
from equiptrak.db import models


def _certificate_pattern(prefix: str) -> re.Pattern:
    return re.compile(rf"^{re.escape(prefix)}-(\d+)$")


def next_certificate_number(db: Session, prefix: str | None = None, start: int | None = None) -> str:
    prefix = prefix or settings.CERTIFICATE_PREFIX
    next_num = settings.CERTIFICATE_START if start is None else start
    pattern = _certificate_pattern(prefix)
    existing = (
        db.query(models.ServiceRecord.certificate_number)
        .filter(models.ServiceRecord.certificate_number.like(f"{prefix}-%"))
        .all()
    )
    for (number,) in existing:
        match = pattern.match(number or "")
        if match:
            next_num = max(next_num, int(match.group(1)) + 1)
    return f"{prefix}-{next_num}"
