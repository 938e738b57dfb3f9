"""Routes for the user registry."""

from typing import Any

from flask import current_app, jsonify

from bracketeer.extensions import get_services
from bracketeer.utils import validate_form

from . import bp, users_bp
from .forms import UserProfileForm


@bp.route("/register", methods=["POST"])
def register() -> Any:
    """Register a wallet, or update the profile if it is already known."""
    form = validate_form(UserProfileForm)
    user, created = get_services().users.register_user(
        form.wallet_address.data,
        form.platform_username.data,
        gamertags=form.gamertags.data,
    )
    if created:
        current_app.logger.info(f"New user registered: {user['id']}")
        return jsonify({"message": "User registered.", "user": user}), 201
    return jsonify({"message": "User updated.", "user": user})


@bp.route("/update", methods=["PUT"])
def update() -> Any:
    """Update the profile of an existing user."""
    form = validate_form(UserProfileForm)
    user = get_services().users.update_user(
        form.wallet_address.data,
        form.platform_username.data,
        gamertags=form.gamertags.data,
    )
    return jsonify({"message": "Profile updated.", "user": user})


@bp.route("/<string:wallet_address>")
def view_user(wallet_address: str) -> Any:
    """Show a user by wallet address."""
    return jsonify(get_services().users.get_user(wallet_address))


@users_bp.route("/global")
def list_users() -> Any:
    """List every registered user."""
    users = get_services().users.list_users()
    return jsonify({"totalUsers": len(users), "users": users})
