"""Product endpoints: list, get by id, create."""
import logging

from flask import Blueprint, jsonify

from cloakworks.api.crud import empty_not_found, parse_entity_id, read_json_object
from cloakworks.api.decorators import current_username, require_bearer_token
from cloakworks.core.models import Product
from cloakworks.core.repository import Repository

bp = Blueprint("products", __name__, url_prefix="/products")

logger = logging.getLogger(__name__)

products = Repository(Product)


@bp.route("", methods=["GET"])
@require_bearer_token
def list_products():
    logger.info(f"Request from user: {current_username()}")
    return jsonify([product.to_dict() for product in products.find_all()]), 200


@bp.route("/<raw_id>", methods=["GET"])
@require_bearer_token
def get_product(raw_id: str):
    product_id = parse_entity_id(raw_id)
    product = products.find_by_id(product_id) if product_id is not None else None
    if product is None:
        return empty_not_found()
    return jsonify(product.to_dict()), 200


@bp.route("", methods=["POST"])
@require_bearer_token
def create_product():
    created = products.save(Product.from_dict(read_json_object()))
    logger.info(f"Product {created.id} saved by {current_username()}")
    return jsonify(created.to_dict()), 201
