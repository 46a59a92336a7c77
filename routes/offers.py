# routes/offers.py
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from routes.common import backend, ok
from services.application_rules import can_manage_offers
from services.date_display import format_date
from services.offer_board import application_title, collect_offers, filter_offers, offer_stats

offers_bp = Blueprint("offers_bp", __name__, url_prefix="/api")


@offers_bp.get("/offers")
@jwt_required()
def list_offers():
    """
    所有申请下的 offer 拍平后返回。
    查询参数：status（all / pending / accepted / rejected）、applicationId、search
    统计基于筛选前的全部 offer。
    """
    apps = backend().get_my_applications()
    offers = collect_offers(apps)
    manageable = {str(a.id) for a in apps if can_manage_offers(a.status)}

    filtered = filter_offers(
        offers,
        status=request.args.get("status"),
        application_id=request.args.get("applicationId"),
        search=request.args.get("search"),
    )

    items = []
    for o in filtered:
        data = o.to_api()
        data["offerDateLabel"] = format_date(o.offer_date)
        data["canRespond"] = o.status == "pending" and str(o.application_id) in manageable
        items.append(data)

    return ok({
        "items": items,
        "stats": offer_stats(offers),
        "applications": [{"id": a.id, "title": application_title(a)} for a in apps],
    })
