"""Shared fixtures: small OpenAPI descriptions used across the suite."""
import copy

import pytest

USERS_DESCRIPTION = {
    "openapi": "3.0.3",
    "info": {"title": "Users API", "version": "1.0.0"},
    "servers": [{"url": "https://api.example.com/v1"}],
    "paths": {
        "/users/{id}": {
            "get": {
                "operationId": "getUser",
                "summary": "Fetch one user",
                "parameters": [
                    {"name": "id", "in": "path", "required": True, "schema": {"type": "string"}},
                    {"name": "limit", "in": "query", "required": True, "schema": {"type": "integer"}},
                ],
                "responses": {"200": {"description": "OK"}},
            }
        }
    },
}

CRUD_DESCRIPTION = {
    "openapi": "3.0.0",
    "info": {"title": "Comprehensive Test API", "version": "1.0.0"},
    "servers": [{"url": "https://api.test.com"}],
    "components": {
        "schemas": {
            "User": {
                "type": "object",
                "title": "User",
                "properties": {
                    "name": {"type": "string"},
                    "email": {"type": "string", "format": "email"},
                    "manager": {"$ref": "#/components/schemas/User"},
                },
                "required": ["name", "email"],
            }
        },
        "parameters": {
            "TenantHeader": {"name": "X-Tenant", "in": "header", "required": True, "schema": {"type": "string"}},
        },
    },
    "paths": {
        "/users": {
            "get": {
                "operationId": "getUsers",
                "summary": "Get all users",
                "parameters": [
                    {"name": "limit", "in": "query", "schema": {"type": "integer", "minimum": 1}},
                    {"name": "filter", "in": "query", "schema": {"type": "string"}},
                ],
                "responses": {"200": {"description": "Success"}},
            },
            "post": {
                "operationId": "createUser",
                "description": "Create a new user",
                "summary": "Create user",
                "parameters": [{"$ref": "#/components/parameters/TenantHeader"}],
                "requestBody": {
                    "required": True,
                    "content": {"application/json": {"schema": {"$ref": "#/components/schemas/User"}}},
                },
                "responses": {"201": {"description": "Created"}},
            },
        },
        "/users/{userId}": {
            "parameters": [{"name": "userId", "in": "path", "required": True, "schema": {"type": "string"}}],
            "put": {
                "operationId": "updateUser",
                "requestBody": {
                    "content": {"application/json": {"schema": {"type": "object", "properties": {"name": {"type": "string"}}}}},
                },
                "responses": {"200": {"description": "Updated"}},
            },
            "delete": {"responses": {"204": {"description": "Deleted"}}},
        },
        "/files": {
            "post": {
                "operationId": "uploadFile",
                "requestBody": {
                    "content": {
                        "multipart/form-data": {
                            "schema": {"type": "object", "properties": {"file": {"type": "string", "format": "binary"}}}
                        }
                    }
                },
                "responses": {"200": {"description": "Uploaded"}},
            }
        },
    },
}


@pytest.fixture
def users_description():
    return copy.deepcopy(USERS_DESCRIPTION)


@pytest.fixture
def crud_description():
    return copy.deepcopy(CRUD_DESCRIPTION)
