"""Deterministic OpenAPI document for the repair shop API.

Scope:
- Auth endpoints and the ops endpoints (/api/ping)
- Order workflow endpoints (list / get with caching headers, create, edit, scan, status)
- Collection endpoints of the supporting records (customers, branches, catalog, accounting)

The Order schema carries ``x-transitions`` (the status sequence) so clients can
render the workflow without hard-coding it.
"""
from typing import Any, Dict, List
from repairshop.models.order import Order
from repairshop.models.customer import Customer
from repairshop.models.accounting_entry import AccountingEntry
from repairshop.models.user import User

__all__ = ["build_openapi_spec"]

SORT_DETAILS = {
    "SortOrdersParam": "Comma separated: orderNumber,status,totalAmount,createdAt,updatedAt,id (prefix - for desc)",
    "SortCustomersParam": "Comma separated: name,createdAt,updatedAt,id (prefix - for desc)",
}


def caching_headers() -> Dict[str, Any]:
    return {
        "ETag": {"schema": {"type": "string"}},
        "Last-Modified": {"schema": {"type": "string"}},
        "X-Last-Modified-ISO": {"schema": {"type": "string"}},
    }


def _ref(name: str) -> Dict[str, str]:
    return {"$ref": f"#/components/schemas/{name}"}


def _obj(props: Dict[str, Any], required: List[str] = ()) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": "object", "properties": props}
    if required:
        out["required"] = list(required)
    return out


def _json(schema: Dict[str, Any], description: str = "OK", **extra) -> Dict[str, Any]:
    return {"description": description, "content": {"application/json": {"schema": schema}}, **extra}


def _id_param(name: str) -> Dict[str, Any]:
    return {"name": name, "in": "path", "required": True, "schema": {"type": "integer"}}


def _schemas() -> Dict[str, Any]:
    money = {"type": "number", "minimum": 0}
    part = _obj({"name": {"type": "string"}, "price": money, "quantity": {"type": "integer", "minimum": 1}},
                ["name", "price", "quantity"])
    item = _obj({
        "brand": {"type": "string"},
        "model": {"type": "string"},
        "parts": {"type": "array", "items": _ref("OrderPart")},
        "totalPrice": {**money, "readOnly": True},
    }, ["brand", "model"])
    order = _obj({
        "id": {"type": "integer", "readOnly": True},
        "orderNumber": {"type": "string", "readOnly": True, "example": "ORD-0001"},
        "customerId": {"type": "integer"},
        "branchId": {"type": "integer"},
        "createdBy": {"type": "integer", "readOnly": True},
        "status": {"type": "string", "enum": list(Order.ALL_STATUSES)},
        "items": {"type": "array", "items": _ref("OrderItem")},
        "totalAmount": {**money, "readOnly": True},
        "notes": {"type": "string", "nullable": True},
        "barcode": {"type": "string", "readOnly": True, "pattern": "^[0-9]{12}$"},
        "deviceLeft": {"type": "boolean"},
        "sentToCentralService": {"type": "boolean"},
        "createdAt": {"type": "string", "format": "date-time", "readOnly": True},
        "updatedAt": {"type": "string", "format": "date-time", "readOnly": True},
    }, ["id", "orderNumber", "customerId", "branchId", "status"])
    order["x-transitions"] = list(Order.STATUS_FLOW)
    return {
        "OrderPart": part,
        "OrderItem": item,
        "Order": order,
        "Customer": _obj({
            "id": {"type": "integer"},
            "name": {"type": "string", "nullable": True},
            "phoneNumber": {"type": "string", "nullable": True},
            "email": {"type": "string", "nullable": True},
            "address": {"type": "string", "nullable": True},
            "contactPreference": {"type": "string", "enum": list(Customer.CONTACT_PREFERENCES)},
            "branchId": {"type": "integer", "nullable": True},
        }, ["id"]),
        "Branch": _obj({
            "id": {"type": "integer"},
            "name": {"type": "string"},
            "address": {"type": "string", "nullable": True},
            "phoneNumber": {"type": "string", "nullable": True},
            "email": {"type": "string", "nullable": True},
            "manager": {"type": "string", "nullable": True},
            "active": {"type": "boolean"},
        }, ["id", "name"]),
        "Brand": _obj({"id": {"type": "integer"}, "name": {"type": "string"}, "imageUrl": {"type": "string", "nullable": True}, "active": {"type": "boolean"}}, ["id", "name"]),
        "DeviceModel": _obj({"id": {"type": "integer"}, "name": {"type": "string"}, "brandId": {"type": "integer"}, "active": {"type": "boolean"}}, ["id", "name", "brandId"]),
        "Part": _obj({
            "id": {"type": "integer"},
            "name": {"type": "string"},
            "modelIds": {"type": "array", "items": {"type": "integer"}},
            "price": money,
            "stock": {"type": "integer"},
            "active": {"type": "boolean"},
        }, ["id", "name"]),
        "AccountingEntry": _obj({
            "id": {"type": "integer"},
            "branchId": {"type": "integer"},
            "amount": money,
            "description": {"type": "string"},
            "type": {"type": "string", "enum": list(AccountingEntry.ALL_TYPES)},
            "category": {"type": "string", "enum": list(AccountingEntry.ALL_CATEGORIES)},
        }, ["id", "branchId", "amount", "type"]),
        "User": _obj({"id": {"type": "integer"}, "name": {"type": "string"}, "email": {"type": "string"}, "role": {"type": "string", "enum": list(User.ALL_ROLES)}}, ["id", "email", "role"]),
        "Pagination": _obj({
            "total": {"type": "integer"},
            "limit": {"type": "integer"},
            "offset": {"type": "integer"},
            "returned": {"type": "integer"},
        }, ["total", "limit", "offset", "returned"]),
        "Error": _obj({"error": _obj({"status": {"type": "integer"}, "title": {"type": "string"}, "detail": {"type": "string"}})}, ["error"]),
    }


def _order_paths() -> Dict[str, Any]:
    order_env = _obj({"order": _ref("Order")}, ["order"])
    orders_env = _obj({"orders": {"type": "array", "items": _ref("Order")}}, ["orders"])
    return {
        "/api/orders": {
            "get": {
                "summary": "List orders",
                "parameters": [
                    {"$ref": "#/components/parameters/LimitParam"},
                    {"$ref": "#/components/parameters/OffsetParam"},
                    {"$ref": "#/components/parameters/SortOrdersParam"},
                    {"name": "branchId", "in": "query", "schema": {"type": "integer"}},
                    {"name": "customerId", "in": "query", "schema": {"type": "integer"}},
                    {"name": "status", "in": "query", "schema": {"type": "string", "enum": list(Order.ALL_STATUSES)}},
                ],
                "responses": {
                    "200": _json(_obj({"data": {"type": "array", "items": _ref("Order")}, "pagination": _ref("Pagination")}), headers=caching_headers()),
                    "304": {"description": "Not Modified"},
                    "400": {"$ref": "#/components/responses/BadRequest"},
                },
                "x-required-permissions": ["ORD.READ"],
            },
            "post": {
                "summary": "Create order (status pending, number and barcode assigned)",
                "requestBody": {"required": True, "content": {"application/json": {"schema": order_env}}},
                "responses": {
                    "201": _json(order_env, "Created"),
                    "400": {"$ref": "#/components/responses/BadRequest"},
                    "409": {"$ref": "#/components/responses/Conflict"},
                },
                "x-required-permissions": ["ORD.CREATE"],
            },
        },
        "/api/orders/{order_id}": {
            "get": {
                "summary": "Get order",
                "parameters": [_id_param("order_id")],
                "responses": {
                    "200": _json(order_env, headers=caching_headers()),
                    "304": {"description": "Not Modified"},
                    "404": {"$ref": "#/components/responses/NotFound"},
                },
                "x-required-permissions": ["ORD.READ"],
            },
            "put": {
                "summary": "Edit order",
                "parameters": [_id_param("order_id")],
                "requestBody": {"required": True, "content": {"application/json": {"schema": order_env}}},
                "responses": {
                    "200": _json(order_env),
                    "400": {"$ref": "#/components/responses/BadRequest"},
                    "404": {"$ref": "#/components/responses/NotFound"},
                },
                "x-required-permissions": ["ORD.UPDATE"],
            },
        },
        "/api/orders/{order_id}/status": {
            "post": {
                "summary": "Set order status",
                "parameters": [_id_param("order_id")],
                "requestBody": {"required": True, "content": {"application/json": {"schema": _obj(
                    {"status": {"type": "string", "enum": list(Order.ALL_STATUSES)}}, ["status"])}}},
                "responses": {
                    "200": _json(order_env),
                    "400": {"$ref": "#/components/responses/BadRequest"},
                    "404": {"$ref": "#/components/responses/NotFound"},
                },
                "x-required-permissions": ["ORD.STATUS"],
            },
        },
        "/api/orders/scan": {
            "post": {
                "summary": "Resolve a scanned barcode or order number and suggest the next status",
                "requestBody": {"required": True, "content": {"application/json": {"schema": _obj({"code": {"type": "string"}}, ["code"])}}},
                "responses": {
                    "200": _json(_obj({
                        "order": _ref("Order"),
                        "suggestedStatus": {"type": "string", "nullable": True, "enum": list(Order.ALL_STATUSES)},
                        "otherMatches": {"type": "array", "items": {"type": "integer"}},
                    }, ["order", "suggestedStatus"])),
                    "400": {"$ref": "#/components/responses/BadRequest"},
                    "404": {"$ref": "#/components/responses/NotFound"},
                },
                "x-required-permissions": ["ORD.READ"],
            },
        },
        "/api/orders/barcode/{code}": {
            "get": {
                "summary": "Orders matching a barcode or order number",
                "parameters": [{"name": "code", "in": "path", "required": True, "schema": {"type": "string"}}],
                "responses": {"200": _json(orders_env)},
                "x-required-permissions": ["ORD.READ"],
            },
        },
        "/api/orders/search": {
            "get": {
                "summary": "Search orders",
                "parameters": [{"name": "query", "in": "query", "required": True, "schema": {"type": "string"}}],
                "responses": {"200": _json(orders_env), "400": {"$ref": "#/components/responses/BadRequest"}},
                "x-required-permissions": ["ORD.READ"],
            },
        },
    }


def _record_paths() -> Dict[str, Any]:
    def listing(key: str, schema: str, perm: str, summary: str, params=None) -> Dict[str, Any]:
        op = {
            "summary": summary,
            "responses": {"200": _json(_obj({key: {"type": "array", "items": _ref(schema)}}))},
            "x-required-permissions": [perm],
        }
        if params:
            op["parameters"] = params
        return op

    def create(key: str, schema: str, perm: str, summary: str) -> Dict[str, Any]:
        env = _obj({key: _ref(schema)}, [key])
        return {
            "summary": summary,
            "requestBody": {"required": True, "content": {"application/json": {"schema": env}}},
            "responses": {"201": _json(env, "Created"), "400": {"$ref": "#/components/responses/BadRequest"}},
            "x-required-permissions": [perm],
        }

    branch_q = [{"name": "branchId", "in": "query", "schema": {"type": "integer"}}]
    return {
        "/api/customers": {
            "get": {
                "summary": "List customers",
                "parameters": [
                    {"$ref": "#/components/parameters/LimitParam"},
                    {"$ref": "#/components/parameters/OffsetParam"},
                    {"$ref": "#/components/parameters/SortCustomersParam"},
                ],
                "responses": {
                    "200": _json(_obj({"data": {"type": "array", "items": _ref("Customer")}, "pagination": _ref("Pagination")}), headers=caching_headers()),
                    "304": {"description": "Not Modified"},
                },
                "x-required-permissions": ["CUST.READ"],
            },
            "post": create("customer", "Customer", "CUST.MANAGE", "Create customer, or update when id is given"),
        },
        "/api/customers/search": {"get": listing("customers", "Customer", "CUST.READ", "Search customers",
                                                 [{"name": "query", "in": "query", "required": True, "schema": {"type": "string"}}])},
        "/api/customers/{customer_id}/orders": {"get": listing("orders", "Order", "CUST.READ", "Orders of a customer", [_id_param("customer_id")])},
        "/api/branches": {
            "get": {
                "summary": "List branches",
                "parameters": [{"$ref": "#/components/parameters/LimitParam"}, {"$ref": "#/components/parameters/OffsetParam"}],
                "responses": {"200": _json(_obj({"data": {"type": "array", "items": _ref("Branch")}, "pagination": _ref("Pagination")}), headers=caching_headers())},
                "x-required-permissions": ["BR.READ"],
            },
            "post": {
                "summary": "Create branch",
                "requestBody": {"required": True, "content": {"application/json": {"schema": _ref("Branch")}}},
                "responses": {"201": _json(_obj({"branch": _ref("Branch")}), "Created")},
                "x-required-permissions": ["BR.MANAGE"],
            },
        },
        "/api/branches/{branch_id}": {
            "get": {
                "summary": "Get branch",
                "parameters": [_id_param("branch_id")],
                "responses": {
                    "200": _json(_obj({"branch": _ref("Branch")}), headers=caching_headers()),
                    "304": {"description": "Not Modified"},
                    "404": {"$ref": "#/components/responses/NotFound"},
                },
                "x-required-permissions": ["BR.READ"],
            },
            "put": {
                "summary": "Edit branch",
                "parameters": [_id_param("branch_id")],
                "requestBody": {"required": True, "content": {"application/json": {"schema": _ref("Branch")}}},
                "responses": {"200": _json(_obj({"branch": _ref("Branch")})), "404": {"$ref": "#/components/responses/NotFound"}},
                "x-required-permissions": ["BR.MANAGE"],
            },
        },
        "/api/catalog/brands": {
            "get": listing("brands", "Brand", "CAT.READ", "List brands"),
            "post": create("brand", "Brand", "CAT.MANAGE", "Create brand"),
        },
        "/api/catalog/brands/{brand_id}/models": {"get": listing("models", "DeviceModel", "CAT.READ", "Models of a brand", [_id_param("brand_id")])},
        "/api/catalog/models": {"post": create("model", "DeviceModel", "CAT.MANAGE", "Create device model")},
        "/api/catalog/models/{model_id}/parts": {"get": listing("parts", "Part", "CAT.READ", "Parts fitting a model", [_id_param("model_id")])},
        "/api/catalog/parts": {"post": create("part", "Part", "CAT.MANAGE", "Create part")},
        "/api/accounting": {
            "get": listing("entries", "AccountingEntry", "ACC.READ", "Accounting entries of a branch", branch_q),
            "post": create("entry", "AccountingEntry", "ACC.CREATE", "Record accounting entry"),
        },
        "/api/accounting/summary": {
            "get": {
                "summary": "Income, expense and balance of a branch",
                "parameters": branch_q,
                "responses": {"200": _json(_obj({"summary": _obj({
                    "income": {"type": "number"},
                    "expense": {"type": "number"},
                    "balance": {"type": "number"},
                    "entryCount": {"type": "integer"},
                    "lastUpdated": {"type": "string", "format": "date-time"},
                })}))},
                "x-required-permissions": ["ACC.READ"],
            },
        },
        "/api/users": {
            "get": listing("users", "User", "USR.MANAGE", "List users"),
            "post": {
                "summary": "Create user",
                "responses": {"201": _json(_obj({"user": _ref("User")}), "Created")},
                "x-required-permissions": ["USR.MANAGE"],
            },
        },
    }


def build_openapi_spec() -> Dict[str, Any]:
    components: Dict[str, Any] = {
        "schemas": _schemas(),
        "responses": {
            "NotFound": {"description": "Not Found", "content": {"application/json": {"schema": _ref("Error")}}},
            "BadRequest": {"description": "Bad Request", "content": {"application/json": {"schema": _ref("Error")}}},
            "Conflict": {"description": "Conflict", "content": {"application/json": {"schema": _ref("Error")}}},
        },
        "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        "parameters": {
            "LimitParam": {"name": "limit", "in": "query", "schema": {"type": "integer", "default": 50}},
            "OffsetParam": {"name": "offset", "in": "query", "schema": {"type": "integer", "default": 0}},
        },
    }
    for pname, desc in SORT_DETAILS.items():
        components["parameters"][pname] = {"name": "sort", "in": "query", "schema": {"type": "string"}, "description": desc}

    public = {"security": []}
    paths: Dict[str, Any] = {
        "/api/ping": {"get": {"summary": "Liveness probe", "responses": {"200": {"description": "pong"}}, **public}},
        "/api/auth/login": {"post": {"summary": "Login", "responses": {"200": {"description": "Access and refresh tokens"}, "401": {"description": "Invalid credentials"}}, **public}},
        "/api/auth/refresh": {"post": {"summary": "New access token from a refresh token", "responses": {"200": {"description": "Access token"}}}},
        "/api/auth/me": {"get": {"summary": "Current user", "responses": {"200": {"description": "OK"}}}},
        "/api/auth/logout": {"post": {"summary": "Revoke the presented token", "responses": {"200": {"description": "OK"}}}},
    }
    paths.update(_order_paths())
    paths.update(_record_paths())

    # operationIds & tags
    tag_desc: Dict[str, str] = {}
    for path, ops in paths.items():
        tag = path.split("/")[2].capitalize()
        for method, od in ops.items():
            rid = path.strip("/").replace("/", "_").replace("{", "").replace("}", "")
            od["operationId"] = f"{method}_{rid}"
            od["tags"] = [tag]
        tag_desc[tag] = f"{tag} endpoints"

    return {
        "openapi": "3.0.3",
        "info": {"title": "Repair Shop API", "version": "0.1.0"},
        "paths": paths,
        "components": components,
        "security": [{"BearerAuth": []}],
        "tags": [{"name": n, "description": d} for n, d in sorted(tag_desc.items())],
    }
