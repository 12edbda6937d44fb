# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for HAL service functionality.
"""

from services.hal import (
    HalLinkBuilder, AffordanceLinkBuilder, HalResponseBuilder, HalFormatter,
    create_hal_formatter
)


class TestHalLinkBuilder:
    """Test HAL link builder functionality."""

    def test_build_simple_link(self):
        """Test building a simple link."""
        builder = HalLinkBuilder("https://api.example.com")

        link = builder.build_link("/api/cases/123")

        assert link.href == "https://api.example.com/api/cases/123"
        assert link.method == "GET"
        assert link.templated is False

    def test_build_action_link(self):
        """Test building an action link."""
        builder = HalLinkBuilder("https://api.example.com")

        link = builder.build_action_link("/api/cases/123", "approve")

        assert link.href == "https://api.example.com/api/cases/123/approve"
        assert link.method == "POST"
        assert link.type == "application/json"
        assert link.title == "Approve"

    def test_base_url_normalization(self):
        """Test that base URL is properly normalized."""
        builder = HalLinkBuilder("https://api.example.com/")  # Trailing slash

        link = builder.build_link("/api/test")

        assert link.href == "https://api.example.com/api/test"


class TestAffordanceLinkBuilder:
    """Test affordance link builder functionality."""

    def test_commands_become_links(self):
        """Each available command is one POST affordance."""
        builder = AffordanceLinkBuilder("https://api.example.com")

        links = builder.build_case_affordances("123", ["approve", "reject", "schedule"], can_delete=False)

        assert {"self", "notes", "approve", "reject", "schedule"} == set(links)
        assert links["approve"].method == "POST"
        assert links["approve"].href == "https://api.example.com/api/cases/123/approve"
        assert links["schedule"].title == "Schedule meeting"

    def test_edit_is_put_on_case(self):
        builder = AffordanceLinkBuilder("https://api.example.com")

        links = builder.build_case_affordances("123", ["edit", "submit"], can_delete=False)

        assert links["edit"].method == "PUT"
        assert links["edit"].href == "https://api.example.com/api/cases/123"
        assert links["submit"].href == "https://api.example.com/api/cases/123/submit"

    def test_delete_only_when_permitted(self):
        builder = AffordanceLinkBuilder("https://api.example.com")

        assert "delete" not in builder.build_case_affordances("123", [], can_delete=False)
        links = builder.build_case_affordances("123", [], can_delete=True)
        assert links["delete"].method == "DELETE"

    def test_public_case_affordances(self):
        builder = AffordanceLinkBuilder("https://api.example.com")

        links = builder.build_public_case_affordances("123")

        assert links["self"].href == "https://api.example.com/api/public/cases/123"
        assert links["sentiment"].href == "https://api.example.com/api/public/cases/123/sentiment"
        assert links["sentiment"].method == "POST"


class TestHalResponseBuilder:
    """Test HAL response builder functionality."""

    def test_build_resource_response(self):
        builder = HalResponseBuilder("https://api.example.com")
        links = {"self": builder.link_builder.build_self_link("/api/cases/123")}

        response = builder.build_resource_response({"id": "123", "title": "Refund"}, links)

        assert response["title"] == "Refund"
        assert response["_links"]["self"] == {
            "href": "https://api.example.com/api/cases/123",
            "method": "GET",
            "title": "Self",
            "templated": False
        }

    def test_build_error_response(self):
        """Test building an error response."""
        builder = HalResponseBuilder("https://api.example.com")

        response = builder.build_error_response(
            "validation-error",
            "Validation Error",
            400,
            "Request validation failed",
            "/api/cases",
            [{"field": "title", "message": "Required"}]
        )

        assert response["type"] == "https://api.example.com/problems/validation-error"
        assert response["title"] == "Validation Error"
        assert response["status"] == 400
        assert response["detail"] == "Request validation failed"
        assert response["instance"] == "/api/cases"
        assert response["errors"] == [{"field": "title", "message": "Required"}]
        assert "help" in response["_links"]
        assert "schema" in response["_links"]

    def test_non_validation_errors_have_no_schema_link(self):
        builder = HalResponseBuilder("https://api.example.com")

        response = builder.build_error_response("conflicting-state", "Conflicting State", 409, "x", "/api/cases/1")

        assert "errors" not in response
        assert "schema" not in response["_links"]


class TestHalFormatter:
    """Test HAL formatter functionality."""

    def test_format_case(self):
        formatter = HalFormatter("https://api.example.com")

        result = formatter.format_case({"id": "123", "status": "pending_review"}, ["approve"], True)

        assert result["status"] == "pending_review"
        assert set(result["_links"]) == {"self", "notes", "approve", "delete"}

    def test_format_public_case(self):
        formatter = HalFormatter("https://api.example.com")

        result = formatter.format_public_case({"id": "123", "likes": 2})

        assert result["likes"] == 2
        assert set(result["_links"]) == {"self", "sentiment"}

    def test_format_error_uses_known_titles(self):
        formatter = create_hal_formatter("https://api.example.com")

        assert formatter.format_error("authentication-required", 401, "x", "/")["title"] == "Authentication Required"
        assert formatter.format_error("something-else", 418, "x", "/")["title"] == "Error"

    def test_format_validation_error(self):
        formatter = HalFormatter("https://api.example.com")

        result = formatter.format_error(
            "validation-error",
            400,
            "Request validation failed",
            "/api/cases",
            [{"field": "title", "message": "Required"}]
        )

        assert result["status"] == 400
        assert result["title"] == "Validation Error"
        assert result["errors"] == [{"field": "title", "message": "Required"}]

    def test_format_not_found_and_server_errors(self):
        formatter = HalFormatter("https://api.example.com")

        assert formatter.format_error("resource-not-found", 404, "gone", "/api/cases/1")["status"] == 404
        assert formatter.format_server_error("boom", "/api/cases/1")["title"] == "Internal Server Error"
