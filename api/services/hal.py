# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS Level-3 API responses with conditional affordance links.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin

from models.responses import HalLink


COMMAND_TITLES = {
    "submit": "Submit case for review",
    "edit": "Edit case",
    "approve": "Approve for scheduling",
    "reject": "Reject case",
    "schedule": "Schedule meeting",
    "respond_to_invitation": "Respond to invitation",
    "respond_to_proposal": "Respond to proposed time",
    "revert": "Revert to pending review",
    "activate": "Mark case active",
    "close": "Close case",
    "publish": "Change public feed visibility",
}

ERROR_TITLES = {
    "validation-error": "Validation Error",
    "insufficient-permissions": "Insufficient Permissions",
    "resource-not-found": "Resource Not Found",
    "conflicting-state": "Conflicting State",
    "service-unavailable": "Service Unavailable",
    "reference-collision": "Reference Collision",
    "authentication-required": "Authentication Required",
    "internal-server-error": "Internal Server Error",
}


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url, path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        """Build self link for a resource."""
        return self.build_link(resource_path, title="Self")

    def build_action_link(
        self,
        resource_path: str,
        action: str,
        method: str = "POST",
        title: Optional[str] = None
    ) -> HalLink:
        """Build action link for a resource."""
        action_path = f"{resource_path}/{action}"
        return self.build_link(
            action_path,
            method=method,
            content_type="application/json",
            title=title or action.title()
        )


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on role and case state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_case_affordances(
        self,
        case_id: str,
        commands: List[str],
        can_delete: bool
    ) -> Dict[str, HalLink]:
        """
        Build one affordance link per command the actor may issue.

        Args:
            case_id: Case identifier
            commands: Commands available to the actor in the current state
            can_delete: Whether the actor may delete the case
        """
        links = {}
        base_path = f"/api/cases/{case_id}"

        links['self'] = self.link_builder.build_self_link(base_path)
        links['notes'] = self.link_builder.build_action_link(base_path, "notes", title="Add note")

        for command in commands:
            if command == "edit":
                links['edit'] = self.link_builder.build_link(
                    base_path,
                    method="PUT",
                    content_type="application/json",
                    title=COMMAND_TITLES["edit"]
                )
            else:
                links[command] = self.link_builder.build_action_link(
                    base_path, command, title=COMMAND_TITLES.get(command)
                )

        if can_delete:
            links['delete'] = self.link_builder.build_link(
                base_path,
                method="DELETE",
                title="Delete case"
            )

        return links

    def build_public_case_affordances(self, case_id: str) -> Dict[str, HalLink]:
        """Build links for a case on the public feed."""
        base_path = f"/api/public/cases/{case_id}"
        return {
            'self': self.link_builder.build_self_link(base_path),
            'sentiment': self.link_builder.build_action_link(base_path, "sentiment", title="Like or dislike")
        }


class HalResponseBuilder:
    """Builder for HAL resource and problem responses."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    def build_resource_response(self, data: Dict[str, Any], links: Dict[str, HalLink]) -> Dict[str, Any]:
        """Attach HAL links to a resource representation."""
        response = dict(data)
        response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return response

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': f"{self.link_builder.base_url}problems/{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['errors'] = validation_errors

        links = {
            'help': self.link_builder.build_link(
                f"/docs/errors#{error_type}",
                title="Error documentation"
            )
        }

        if error_type == "validation-error":
            links['schema'] = self.link_builder.build_link(
                "/openapi/openapi.json",
                title="API schema"
            )

        error_response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_case(
        self,
        case: Dict[str, Any],
        commands: List[str],
        can_delete: bool
    ) -> Dict[str, Any]:
        """Format a case with affordance links for the current actor."""
        links = self.builder.affordance_builder.build_case_affordances(case['id'], commands, can_delete)
        return self.builder.build_resource_response(case, links)

    def format_public_case(self, case: Dict[str, Any]) -> Dict[str, Any]:
        """Format a public case projection."""
        links = self.builder.affordance_builder.build_public_case_affordances(case['id'])
        return self.builder.build_resource_response(case, links)

    def format_error(
        self,
        error_type: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Format a problem response for an error type."""
        return self.builder.build_error_response(
            error_type,
            ERROR_TITLES.get(error_type, "Error"),
            status,
            detail,
            instance,
            validation_errors
        )

    def format_server_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format a server error response."""
        return self.format_error("internal-server-error", 500, detail, instance)


# Convenience function for creating HAL formatter
def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
