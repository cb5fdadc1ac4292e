"""
HOTP SECOND FACTOR API - FLASK BLUEPRINT

Every endpoint takes the account id in the URL. Session handling and deciding
which account is logging in belong to the host application.

Examples:
curl -X POST http://localhost:5000/api/tfa/alice/seed -H "Content-Type: application/json" -d '{"seed": "JBSWY3DPEHPK3PXP"}'
curl -X POST http://localhost:5000/api/tfa/alice/validate -H "Content-Type: application/json" -d '{"code": "755224"}'
"""
import logging

from flask import Blueprint, current_app, jsonify, request

from tfa_core.exceptions import ConfigurationError, StoreError
from tfa_core.otp_core import DEFAULT_ISSUER, format_otpauth_uri
from tfa_core.validator import HotpValidator, Rejection, message_for

logger = logging.getLogger(__name__)

tfa_bp = Blueprint('tfa', __name__, url_prefix='/api/tfa')


def _validator() -> HotpValidator:
    return current_app.extensions["tfa"]


@tfa_bp.errorhandler(StoreError)
def handle_store_error(error):
    logger.error("Secret store failure: %s", error)
    return jsonify({"error": "Second factor storage is unavailable"}), 503


@tfa_bp.errorhandler(ConfigurationError)
def handle_configuration_error(error):
    logger.error("Second factor misconfigured: %s", error)
    return jsonify({"error": "Second factor is not configured"}), 503


@tfa_bp.route('/fallbacks', methods=['GET'])
def get_fallbacks():
    return jsonify({"fallbacks": _validator().get_fallbacks()})


@tfa_bp.route('/cipher', methods=['GET'])
def get_cipher():
    """Configured seed cipher and its unmet dependencies (empty when usable)."""
    cipher = _validator().seed_vault.cipher
    return jsonify({
        "method": cipher.method_id,
        "title": cipher.title,
        "unmet_dependencies": cipher.check_availability(),
    })


@tfa_bp.route('/<string:account>/ready', methods=['GET'])
def ready(account):
    return jsonify({"account": account, "ready": _validator().ready(account)})


@tfa_bp.route('/<string:account>/counter', methods=['GET'])
def get_counter(account):
    return jsonify({"account": account, "counter": _validator().get_hotp_counter(account)})


@tfa_bp.route('/<string:account>/seed', methods=['POST'])
def store_seed(account):
    """
    Enroll a seed for an account.
    Body: { "seed": "<base32>", "issuer": "optional" }
    """
    data = request.get_json(silent=True) or {}
    seed = data.get("seed")
    if not isinstance(seed, str) or not seed.strip():
        return jsonify({"error": "Seed is required in JSON body"}), 400

    validator = _validator()
    validator.store_seed(account, seed.strip())

    # Provisioning starts at the counter the next validation will try first
    next_counter = validator.get_hotp_counter(account) + 1
    uri = format_otpauth_uri(
        seed.strip(),
        account=account,
        issuer=data.get("issuer", DEFAULT_ISSUER),
        digits=validator.code_length,
        counter=next_counter,
    )

    return jsonify({"account": account, "stored": True, "otpauth_uri": uri}), 201


@tfa_bp.route('/<string:account>/seed', methods=['DELETE'])
def delete_seed(account):
    _validator().delete_seed(account)
    return "", 204


@tfa_bp.route('/<string:account>/validate', methods=['POST'])
def validate(account):
    """
    Check a code submitted by the user.
    Body: { "code": "123456" }
    """
    data = request.get_json(silent=True) or {}
    code = data.get("code")
    if not isinstance(code, str) or not code.strip():
        return jsonify({"error": "OTP code is required in JSON body"}), 400

    result = _validator().validate(account, code)
    if result.accepted:
        return jsonify({"valid": True, "counter": result.counter})

    return jsonify({
        "valid": False,
        "reason": result.reason.value,
        "errors": message_for(result),
        "already_used": result.reason is Rejection.ALREADY_USED,
    }), 400
