"""User endpoints: list, get by id, create, and the caller's own token claims."""
import logging

from flask import Blueprint, jsonify

from cloakworks.api.crud import empty_not_found, parse_entity_id, read_json_object
from cloakworks.api.decorators import current_claims, current_username, require_bearer_token
from cloakworks.core.models import User
from cloakworks.core.repository import Repository

bp = Blueprint("users", __name__, url_prefix="/users")

logger = logging.getLogger(__name__)

users = Repository(User)


@bp.route("", methods=["GET"])
@require_bearer_token
def list_users():
    logger.info(f"Request from user: {current_username()}")
    return jsonify([user.to_dict() for user in users.find_all()]), 200


@bp.route("/me", methods=["GET"])
@require_bearer_token
def current_user():
    """Claims of the verified token, verbatim (not a stored entity)."""
    return jsonify(current_claims()), 200


@bp.route("/<raw_id>", methods=["GET"])
@require_bearer_token
def get_user(raw_id: str):
    user_id = parse_entity_id(raw_id)
    user = users.find_by_id(user_id) if user_id is not None else None
    if user is None:
        return empty_not_found()
    return jsonify(user.to_dict()), 200


@bp.route("", methods=["POST"])
@require_bearer_token
def create_user():
    created = users.save(User.from_dict(read_json_object()))
    logger.info(f"User {created.id} saved by {current_username()}")
    return jsonify(created.to_dict()), 201
