"""
responses.py — The fixed response envelope.

    success:     {"ok": true,  "message": "...", "data": {...}}
    app error:   {"ok": false, "message": "...", "data": {"code": "..."}}   (AppError.to_dict)
    validation:  {"ok": false, "message": "Validation error", "errors": {field: [...]}}

Routes only ever build the success shape; failures are rendered by the global
error handlers in app/__init__.py.
"""

from __future__ import annotations

from flask import jsonify


def success(data=None, message: str = "success", status: int = 200):
    return jsonify({"ok": True, "message": message, "data": data}), status


def validation_errors(errors: dict):
    return jsonify({"ok": False, "message": "Validation error", "errors": errors}), 422
