"""Minimal deterministic OpenAPI spec builder.

Every route is declared once in ENDPOINTS; guarded operations carry
`x-required-capabilities` (manager capabilities, `full_access`, or a role
name prefixed with `role:`). Listing endpoints get the pagination params and
caching headers.
"""
from typing import Any, Dict, List, Tuple

from .constants.permissions import (
    ALL_KINDS, ALL_STATUSES, ALL_OUTCOMES, ALL_ITEM_TYPES, CAPABILITIES, FULL_ACCESS,
    ROLE_CANDIDATE, ROLE_MANAGER, VIEW_ALL_APPLICATIONS, APPROVE_APPLICATIONS, REJECT_APPLICATIONS,
)
from .services.workflow import REQUEST_FSM

__all__ = ["build_openapi_spec", "ENDPOINTS"]

CANDIDATE = f"role:{ROLE_CANDIDATE}"
MANAGER = f"role:{ROLE_MANAGER}"
REVIEW = [VIEW_ALL_APPLICATIONS, APPROVE_APPLICATIONS, REJECT_APPLICATIONS]

# (path, method, summary, required capabilities or None when open, is_listing)
ENDPOINTS: List[Tuple[str, str, str, Any, bool]] = [
    ("/auth/register", "post", "Register a candidate account", None, False),
    ("/auth/login", "post", "Login", None, False),
    ("/auth/me", "get", "Current principal", [], False),
    ("/requests", "post", "Submit an approval request", [CANDIDATE], False),
    ("/requests", "get", "List approval requests (account kinds need full access)", REVIEW, True),
    ("/requests/mine", "get", "List own requests", [], True),
    ("/requests/{request_id}", "get", "Get one request (subject or reviewer)", [], False),
    ("/requests/{request_id}/decide", "post", "Accept or reject a pending request",
     [APPROVE_APPLICATIONS, REJECT_APPLICATIONS, FULL_ACCESS], False),
    ("/enrollments/status/{course_id}", "get", "Newest enrollment status for a course", [CANDIDATE], False),
    ("/enrollments/mine", "get", "Enrollment history", [CANDIDATE], False),
    ("/enrollments/stats", "get", "Enrollment counts per status", [VIEW_ALL_APPLICATIONS], False),
    ("/enrollments/evidence", "post", "Upload payment evidence", [CANDIDATE], False),
    ("/cart", "get", "Get cart", [CANDIDATE], False),
    ("/cart", "delete", "Clear cart", [CANDIDATE], False),
    ("/cart/items", "post", "Add cart item (idempotent)", [CANDIDATE], False),
    ("/cart/items/{cart_item_id}", "delete", "Remove cart item", [CANDIDATE], False),
    ("/cart/checkout", "post", "Submit enrollment requests for cart items", [CANDIDATE], False),
    ("/managers", "get", "List managers", [MANAGER], True),
    ("/managers/{manager_id}", "get", "Get manager", [MANAGER], False),
    ("/managers/{manager_id}", "delete", "Delete (deactivate) another manager", [FULL_ACCESS], False),
    ("/managers/{manager_id}/permissions", "put", "Replace another manager's permissions", [FULL_ACCESS], False),
    ("/managers/{manager_id}/permissions/{capability}", "patch", "Set one capability flag on another manager (clears full access)",
     [FULL_ACCESS], False),
    ("/audit/logs", "get", "List audit log entries", [FULL_ACCESS], True),
    ("/healthz", "get", "Health check", None, False),
]


def _caching_headers() -> Dict[str, Any]:
    return {
        "ETag": {"schema": {"type": "string"}},
        "Last-Modified": {"schema": {"type": "string"}},
    }


def _path_params(path: str) -> List[Dict[str, Any]]:
    out = []
    for seg in path.split("/"):
        if seg.startswith("{"):
            name = seg.strip("{}")
            typ = "string" if name in ("course_id", "capability") else "integer"
            out.append({"name": name, "in": "path", "required": True, "schema": {"type": typ}})
    return out


def _schemas() -> Dict[str, Any]:
    return {
        "PermissionSet": {
            "type": "object",
            "properties": {c: {"type": "boolean"} for c in CAPABILITIES + (FULL_ACCESS,)},
            "additionalProperties": False,
        },
        "ApprovalRequest": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "kind": {"type": "string", "enum": list(ALL_KINDS)},
                "subject_id": {"type": "integer"},
                "payload": {"type": "object"},
                "status": {"type": "string", "enum": list(ALL_STATUSES)},
                "reviewer_id": {"type": "integer", "nullable": True},
                "decision_message": {"type": "string", "nullable": True},
            },
            "required": ["id", "kind", "subject_id", "status"],
            "x-transitions": {s: sorted(t) for s, t in REQUEST_FSM.graph.items()},
        },
        "Decision": {
            "type": "object",
            "properties": {
                "outcome": {"type": "string", "enum": list(ALL_OUTCOMES)},
                "message": {"type": "string"},
                "permissions": {"$ref": "#/components/schemas/PermissionSet"},
            },
            "required": ["outcome"],
        },
        "CartItem": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "item_id": {"type": "string"},
                "item_type": {"type": "string", "enum": list(ALL_ITEM_TYPES)},
            },
            "required": ["id", "item_id", "item_type"],
        },
        "Pagination": {
            "type": "object",
            "properties": {
                "total": {"type": "integer"},
                "limit": {"type": "integer"},
                "offset": {"type": "integer"},
                "returned": {"type": "integer"},
            },
            "required": ["total", "limit", "offset", "returned"],
        },
        "Error": {
            "type": "object",
            "properties": {
                "error": {
                    "type": "object",
                    "properties": {
                        "status": {"type": "integer"},
                        "title": {"type": "string"},
                        "detail": {"type": "string"},
                    },
                }
            },
            "required": ["error"],
        },
    }


def build_openapi_spec() -> Dict[str, Any]:
    components: Dict[str, Any] = {
        "schemas": _schemas(),
        "responses": {
            "BadRequest": {"description": "Bad Request"},
            "Forbidden": {"description": "Forbidden"},
            "NotFound": {"description": "Not Found"},
            "Conflict": {"description": "Conflict"},
        },
        "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        "parameters": {
            "LimitParam": {"name": "limit", "in": "query", "schema": {"type": "integer", "default": 50}},
            "OffsetParam": {"name": "offset", "in": "query", "schema": {"type": "integer", "default": 0}},
        },
    }

    paths: Dict[str, Any] = {}
    tag_desc: Dict[str, str] = {}
    for path, method, summary, required, listing in ENDPOINTS:
        op: Dict[str, Any] = {"summary": summary, "responses": {"200": {"description": "OK"}}}
        params = _path_params(path)
        if listing:
            params += [{"$ref": "#/components/parameters/LimitParam"}, {"$ref": "#/components/parameters/OffsetParam"}]
            op["responses"]["200"]["headers"] = _caching_headers()
            op["responses"]["304"] = {"description": "Not Modified"}
        if params:
            op["parameters"] = params
        if required is None:
            op["security"] = []
        else:
            op["responses"]["403"] = {"$ref": "#/components/responses/Forbidden"}
            if required:
                op["x-required-capabilities"] = list(required)
        tag = path.split("/")[1].capitalize()
        rid = path.strip("/").replace("/", "_").replace("{", "").replace("}", "")
        op["operationId"] = f"{method}_{rid}"
        op["tags"] = [tag]
        tag_desc[tag] = f"{tag} endpoints"
        paths.setdefault(path, {})[method] = op

    paths["/requests/{request_id}/decide"]["post"]["requestBody"] = {
        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Decision"}}}
    }
    paths["/managers/{manager_id}/permissions"]["put"]["requestBody"] = {
        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/PermissionSet"}}}
    }
    paths["/managers/{manager_id}/permissions/{capability}"]["patch"]["requestBody"] = {
        "content": {"application/json": {"schema": {
            "type": "object", "properties": {"value": {"type": "boolean"}}, "required": ["value"],
        }}}
    }

    return {
        "openapi": "3.0.3",
        "info": {"title": "Marketplace Approvals API", "version": "0.1.0"},
        "paths": paths,
        "components": components,
        "security": [{"BearerAuth": []}],
        "tags": [{"name": n, "description": d} for n, d in sorted(tag_desc.items())],
    }
