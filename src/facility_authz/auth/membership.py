"""Organization membership lookup for role resolution.

Roles are assigned per organization: each membership record carries the
role list the user holds in that organization. The authentication service
calls ``session_for`` at sign-in (and on organization switch) to embed the
active membership's roles in the session.

Table layout (single-table design):
    PK = USER#{user_id}
    SK = ORG#{organization_id}
    roles: list of role strings
    is_default: the organization selected at sign-in
    organization_name, organization_slug

For On-Call Engineers:
    DynamoDB failures are NOT converted into "no roles". A throttled or
    failing lookup raises, and the HTTP layer returns 5xx rather than a
    misleading 401/403.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key

from src.facility_authz.auth.session import SessionIdentity
from src.facility_authz.logging_utils import sanitize_for_log, user_id_prefix

logger = logging.getLogger(__name__)

USER_PREFIX = "USER#"
ORG_PREFIX = "ORG#"


def _item_roles(item: dict[str, Any], user_id: str) -> list[str]:
    roles = item.get("roles") or []
    # DynamoDB may hand back a string set instead of a list
    if not isinstance(roles, (list, set, tuple)):
        logger.warning(
            "Membership roles attribute has unexpected type",
            extra={
                "user_id_prefix": user_id_prefix(user_id),
                "type": sanitize_for_log(type(roles).__name__),
            },
        )
        return []
    if isinstance(roles, set):
        return sorted(str(role) for role in roles)
    return [str(role) for role in roles]


class MembershipStore:
    """Read and write organization membership records in DynamoDB."""

    def __init__(self, table_name: str | None = None, region_name: str | None = None):
        """Initialize the store.

        Args:
            table_name: DynamoDB table name.
                       Defaults to MEMBERSHIPS_TABLE env var (required).
            region_name: AWS region, defaults to AWS_REGION/AWS_DEFAULT_REGION
        """
        self._table_name = table_name or os.environ["MEMBERSHIPS_TABLE"]
        self._region_name = (
            region_name
            or os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
        )
        self._table = None  # Lazy initialization

    def _get_table(self):
        """Get DynamoDB table resource (lazy initialization)."""
        if self._table is None:
            dynamodb = boto3.resource("dynamodb", region_name=self._region_name)
            self._table = dynamodb.Table(self._table_name)
        return self._table

    def put_membership(
        self,
        user_id: str,
        organization_id: str,
        roles: list[str],
        is_default: bool = False,
        organization_name: str | None = None,
        organization_slug: str | None = None,
    ) -> dict[str, Any]:
        """Create or replace a membership record."""
        item: dict[str, Any] = {
            "PK": f"{USER_PREFIX}{user_id}",
            "SK": f"{ORG_PREFIX}{organization_id}",
            "user_id": user_id,
            "organization_id": organization_id,
            "roles": list(roles),
            "is_default": is_default,
            "entity_type": "MEMBERSHIP",
        }
        if organization_name is not None:
            item["organization_name"] = organization_name
        if organization_slug is not None:
            item["organization_slug"] = organization_slug

        self._get_table().put_item(Item=item)
        return item

    def get_membership(
        self, user_id: str, organization_id: str | None = None
    ) -> dict[str, Any] | None:
        """Fetch a membership record.

        Args:
            user_id: Authenticated user id
            organization_id: Organization to look up. When omitted, the
                user's default membership is returned (or the first one if
                none is flagged default).

        Returns:
            The membership item, or None if the user has no such membership
        """
        table = self._get_table()

        if organization_id is not None:
            response = table.get_item(
                Key={
                    "PK": f"{USER_PREFIX}{user_id}",
                    "SK": f"{ORG_PREFIX}{organization_id}",
                }
            )
            return response.get("Item")

        response = table.query(
            KeyConditionExpression=Key("PK").eq(f"{USER_PREFIX}{user_id}")
            & Key("SK").begins_with(ORG_PREFIX)
        )
        items = response.get("Items", [])
        if not items:
            logger.debug(
                "No memberships found",
                extra={"user_id_prefix": user_id_prefix(user_id)},
            )
            return None

        for item in items:
            if item.get("is_default"):
                return item
        return items[0]

    def get_roles(
        self, user_id: str, organization_id: str | None = None
    ) -> list[str]:
        """Role list of a membership; empty when there is no membership."""
        item = self.get_membership(user_id, organization_id)
        if item is None:
            return []
        return _item_roles(item, user_id)

    def session_for(
        self,
        user_id: str,
        organization_id: str | None = None,
        email: str | None = None,
    ) -> SessionIdentity:
        """Build the session identity for a user's active membership.

        A user without a membership still gets a session (they are
        authenticated) but with no roles.
        """
        item = self.get_membership(user_id, organization_id)
        if item is None:
            return SessionIdentity(user_id=user_id, roles=[], email=email)

        return SessionIdentity(
            user_id=user_id,
            roles=_item_roles(item, user_id),
            email=email,
            organization_id=item.get("organization_id"),
            organization_name=item.get("organization_name"),
            organization_slug=item.get("organization_slug"),
        )
