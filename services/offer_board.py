# services/offer_board.py
"""
录取管理页：把所有申请下的 offer 拍平，附带所属申请的信息，再做筛选和统计。
"""
from __future__ import annotations

from typing import List, Optional, Sequence

from models.application import Application, OfferLetter, OfferStatus


class OfferWithApplication(OfferLetter):
    application_id: int | str
    application_title: str = ""


def application_title(app: Application) -> str:
    return app.notes or f"Application {str(app.id)[-6:]}"


def collect_offers(applications: Sequence[Application]) -> List[OfferWithApplication]:
    offers = []
    for app in applications:
        title = application_title(app)
        for offer in app.offer_letters:
            offers.append(OfferWithApplication(
                **offer.model_dump(),
                application_id=app.id,
                application_title=title,
            ))
    return offers


def applications_by_status(applications: Sequence[Application], status) -> List[Application]:
    status = getattr(status, "value", status)
    return [a for a in applications if a.status == status]


def applications_by_stage(applications: Sequence[Application], stage) -> List[Application]:
    stage = getattr(stage, "value", stage)
    return [a for a in applications if a.stage == stage]


def filter_offers(
    offers: Sequence[OfferWithApplication],
    status: Optional[str] = None,
    application_id=None,
    search: Optional[str] = None,
) -> List[OfferWithApplication]:
    items = list(offers)

    # "all" 与不传等价
    if status and status != "all":
        items = [o for o in items if o.status == status]

    if application_id not in (None, "", "all"):
        items = [o for o in items if str(o.application_id) == str(application_id)]

    if search:
        needle = search.strip().lower()
        items = [
            o for o in items
            if needle in o.university_name.lower()
            or needle in o.program_name.lower()
            or needle in o.application_title.lower()
        ]

    return items


def offer_stats(offers: Sequence[OfferLetter]) -> dict:
    return {
        "total": len(offers),
        "pending": sum(1 for o in offers if o.status == OfferStatus.PENDING.value),
        "accepted": sum(1 for o in offers if o.status == OfferStatus.ACCEPTED.value),
        "rejected": sum(1 for o in offers if o.status == OfferStatus.REJECTED.value),
    }
