# Overview: Flask API routes for bank accounts.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..models import BankAccount
from ..services import bank_account_service
from ..validation import ModelValidationPolicy, enforce_rules_bank_account, validate_payload

BANK_ACCOUNT_POLICY = ModelValidationPolicy(
    writable_fields={"bank_name", "account_number", "ifsc_code", "account_holder_name", "upi_id", "is_primary"},
    required_on_create={"bank_name", "account_number", "ifsc_code", "account_holder_name", "upi_id"},
)

bank_accounts_bp = Blueprint("bank_accounts", __name__, url_prefix="/api/bank-accounts")


@bank_accounts_bp.post("")
@require_auth
def create_account_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=BankAccount, payload=payload, policy=BANK_ACCOUNT_POLICY, partial=False)
        enforce_rules_bank_account(patch)
        account = bank_account_service.create_account(g.owner_id, patch)
        return jsonify({"bank_account": account.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create bank account")
        return jsonify({"error": "Internal server error"}), 500


@bank_accounts_bp.get("")
@require_auth
def list_accounts_route():
    accounts = bank_account_service.list_accounts(g.owner_id)
    return jsonify({"bank_accounts": [a.to_dict() for a in accounts]}), 200


@bank_accounts_bp.put("/<int:account_id>")
@require_auth
def update_account_route(account_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=BankAccount, payload=payload, policy=BANK_ACCOUNT_POLICY, partial=True)
        enforce_rules_bank_account(patch)
        account = bank_account_service.update_account(g.owner_id, account_id, patch)
        return jsonify({"bank_account": account.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update bank account")
        return jsonify({"error": "Internal server error"}), 500


@bank_accounts_bp.post("/<int:account_id>/primary")
@require_auth
def set_primary_route(account_id: int):
    try:
        account = bank_account_service.set_primary(g.owner_id, account_id)
        return jsonify({"bank_account": account.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to set primary bank account")
        return jsonify({"error": "Internal server error"}), 500


@bank_accounts_bp.delete("/<int:account_id>")
@require_auth
def delete_account_route(account_id: int):
    try:
        bank_account_service.delete_account(g.owner_id, account_id)
        return jsonify({"message": "Bank account deleted"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete bank account")
        return jsonify({"error": "Internal server error"}), 500
