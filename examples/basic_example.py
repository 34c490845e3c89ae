#!/usr/bin/env python3
"""
Basic usage example for restspec.

This example demonstrates:
- Declaring routes with pydantic validators
- Path-level defaults shared by a router's operations
- Mounting a router under a prefix
- Validated responses
- Serving and writing the generated OpenAPI document
"""

import json
import logging
from typing import Optional

from pydantic import BaseModel, Field

from restspec import HTTPMethod, Request, RestApplication, Router


class User(BaseModel):
    id: str
    name: str = Field(..., min_length=1)
    email: str


class CreateUser(BaseModel):
    """A user to create."""

    name: str = Field(..., min_length=1, examples=["Alice"])
    email: str = Field(..., examples=["alice@example.com"])


class UserPath(BaseModel):
    user_id: str = Field(..., description="User identifier")


class ListQuery(BaseModel):
    limit: Optional[int] = Field(None, ge=1, le=100, description="Maximum number of users")


# In-memory data store for this example
users_db = {
    "1": {"id": "1", "name": "Alice", "email": "alice@example.com"},
    "2": {"id": "2", "name": "Bob", "email": "bob@example.com"},
}


def create_app(write_path=None):
    app = RestApplication({
        "info": {"title": "Users API", "version": "1.0.0"},
        "servers": [{"url": "http://localhost:8000"}],
        "write_path": write_path,
    })

    users = Router({"summary": "Users", "description": "User management"})

    @users.get("/", {"summary": "List users", "validators": {"query": ListQuery}})
    def list_users(request, response):
        limit = int((request.query_params or {}).get("limit", 100))
        return list(users_db.values())[:limit]

    @users.post("/", {
        "summary": "Create a user",
        "responses": [201],
        "validators": {"body": CreateUser, "response": {201: User}},
    })
    def create_user(request, response):
        data = request.parsed_body()
        user = {"id": str(len(users_db) + 1), **data}
        users_db[user["id"]] = user
        response.status(201).send_validated(user)

    users.use("/:user_id", {"responses": [200, 404], "validators": {"path": UserPath}})

    @users.get("/:user_id", {"summary": "Get a user", "validators": {"response": {200: User}}})
    def get_user(request, response):
        user = users_db.get(request.path_params["user_id"])
        if user is None:
            response.status(404).json({"error": "User not found"})
            return
        response.send_validated(user)

    @users.delete("/:user_id", {"summary": "Delete a user"})
    def delete_user(request, response):
        users_db.pop(request.path_params["user_id"], None)

    app.use("/users", users)
    return app.startup()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = create_app()

    print("=== GET /users/1 ===")
    print(app.execute(Request(HTTPMethod.GET, "/users/1")).body)

    print("=== POST /users/ (invalid) ===")
    print(app.execute(Request(
        HTTPMethod.POST, "/users/", headers={"Content-Type": "application/json"}, body='{"name": ""}'
    )).body)

    print("=== GET /openapi.json ===")
    document = app.execute(Request(HTTPMethod.GET, "/openapi.json")).get_json()
    print(json.dumps(document, indent=2))
