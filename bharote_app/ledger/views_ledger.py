"""JSON endpoints: vote submission and receipt, ballot options, explorer, verification, results, admin."""

import json
import logging

from django.conf import settings
from django.http import Http404, JsonResponse
from django.views.decorators.http import require_GET, require_POST

from ledger import explorer, reporting
from ledger.eligibility import get_voter_by_user_id
from ledger.exceptions import (
    AlreadyVotedError,
    DuplicateContactError,
    DuplicateDeviceError,
    EligibilityError,
    InvalidFingerprintError,
    InvalidOptionError,
    LedgerBusyError,
)
from ledger.identity_guard import device_fingerprint_digest
from ledger.permissions import LEDGER_RESET, LEDGER_VIEW_VOTERS, json_permission_required
from ledger.services import cast_vote
from ledger.store import reset_ledger
from ledger.verifier import verify_chain

logger = logging.getLogger(__name__)

_RESET_CONFIRMATION = "RESET"

# Conflicts with existing ledger state are 409; everything else is a plain refusal.
_ELIGIBILITY_STATUS: dict[type[EligibilityError], int] = {
    AlreadyVotedError: 409,
    DuplicateDeviceError: 409,
    DuplicateContactError: 409,
}


def _parse_json_body(request) -> dict[str, object]:
    if request.content_type and request.content_type.startswith("application/json"):
        raw = request.body.decode("utf-8") if request.body else "{}"
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("request body must be a JSON object")
        return data
    return {key: request.POST.get(key) for key in request.POST}


def _parse_vote_payload(request) -> tuple[str, str | None]:
    data = _parse_json_body(request)

    party_id = str(data.get("party_id") or "").strip()
    if not party_id:
        raise ValueError("party_id is required")

    visitor_id = str(data.get("visitor_id") or "").strip()
    fingerprint_hash = device_fingerprint_digest(visitor_id) if visitor_id else None
    return party_id, fingerprint_hash


@require_POST
def vote_submit(request):
    if not request.user.is_authenticated:
        return JsonResponse({"ok": False, "error": "Authentication required."}, status=403)

    try:
        party_id, fingerprint_hash = _parse_vote_payload(request)
    except (ValueError, json.JSONDecodeError) as exc:
        return JsonResponse({"ok": False, "error": str(exc)}, status=400)

    voter = get_voter_by_user_id(request.user.get_username())
    if voter is None:
        return JsonResponse(
            {"ok": False, "error": "You must register as a voter before voting.", "code": "not_registered"},
            status=403,
        )

    try:
        receipt = cast_vote(voter_ref=voter.pk, party_id=party_id, fingerprint_hash=fingerprint_hash)
    except (InvalidOptionError, InvalidFingerprintError) as exc:
        return JsonResponse({"ok": False, "error": str(exc)}, status=400)
    except EligibilityError as exc:
        status = _ELIGIBILITY_STATUS.get(type(exc), 403)
        return JsonResponse({"ok": False, "error": str(exc), "code": exc.code}, status=status)
    except LedgerBusyError as exc:
        response = JsonResponse({"ok": False, "error": str(exc), "code": "busy", "retryable": True}, status=503)
        response["Retry-After"] = "1"
        return response

    return JsonResponse({"ok": True, "voter_id": voter.voter_id, **receipt.as_dict()})


@require_GET
def vote_receipt(request):
    if not request.user.is_authenticated:
        return JsonResponse({"ok": False, "error": "Authentication required."}, status=403)

    voter = get_voter_by_user_id(request.user.get_username())
    if voter is None:
        return JsonResponse(
            {"ok": False, "error": "You are not registered as a voter.", "code": "not_registered"},
            status=403,
        )

    block = explorer.block_for_voter(voter)
    if block is None:
        return JsonResponse({"ok": False, "error": "No vote recorded yet.", "code": "not_voted"}, status=404)

    return JsonResponse({"ok": True, "voter_id": voter.voter_id, **explorer.block_public_dict(block)})


@require_GET
def parties(request):
    return JsonResponse({"parties": reporting.ballot_options()})


@require_GET
def block_list(request):
    page = explorer.paginate_blocks(
        page_number=request.GET.get("page") or 1,
        per_page=settings.LEDGER_EXPLORER_PAGE_SIZE,
        query=str(request.GET.get("q") or ""),
    )
    return JsonResponse(
        {
            "blocks": [explorer.block_public_dict(block) for block in page.object_list],
            "page": page.number,
            "num_pages": page.paginator.num_pages,
            "total_blocks": page.paginator.count,
            "has_next": page.has_next(),
            "has_previous": page.has_previous(),
        }
    )


@require_GET
def block_detail(request, block_number: int):
    block = explorer.get_block(block_number)
    if block is None:
        raise Http404("block not found")
    return JsonResponse(explorer.block_public_dict(block))


@require_GET
def chain_verify(request):
    result = verify_chain()
    if not result.is_valid:
        logger.error(
            "chain_verification_failed block_number=%s reason=%s detail=%s",
            result.block_number,
            result.reason,
            result.detail,
        )
    return JsonResponse(result.as_dict())


@require_GET
def public_chain(request):
    return JsonResponse(explorer.build_public_chain_export())


@require_GET
def results(request):
    return JsonResponse(
        {
            "results": reporting.vote_counts(),
            "turnout": reporting.turnout_stats(),
        }
    )


@require_POST
@json_permission_required(LEDGER_RESET)
def admin_reset(request):
    try:
        data = _parse_json_body(request)
    except (ValueError, json.JSONDecodeError) as exc:
        return JsonResponse({"ok": False, "error": str(exc)}, status=400)

    if str(data.get("confirm") or "").strip() != _RESET_CONFIRMATION:
        return JsonResponse(
            {"ok": False, "error": f"Type {_RESET_CONFIRMATION} to confirm clearing the ledger."},
            status=400,
        )

    counts = reset_ledger(actor=request.user.get_username())
    return JsonResponse({"ok": True, **counts})


@require_GET
@json_permission_required(LEDGER_VIEW_VOTERS)
def admin_stats(request):
    return JsonResponse(
        {
            "turnout": reporting.turnout_stats(),
            "results": reporting.vote_counts(),
            "recent_voters": reporting.recent_voters(),
        }
    )
