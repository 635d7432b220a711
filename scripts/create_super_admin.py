#!/usr/bin/env python3
"""
Bootstrap a platform SuperAdmin in the Cognito user pool.

Creates the user (Cognito emails a temporary password), tags it with the
SuperAdmins role and adds it to the SuperAdmins group. Re-running for an
existing user only repairs the role attribute and group membership.

Usage:
    uv run python scripts/create_super_admin.py --email admin@a1strategy.net --name "Platform Admin"
    uv run python scripts/create_super_admin.py --email admin@a1strategy.net --user-pool-id us-east-1_abc123
"""

import argparse
import os
import sys
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

SUPER_ADMIN_GROUP = "SuperAdmins"


def create_super_admin(
    cognito: Any,
    user_pool_id: str,
    email: str,
    name: Optional[str] = None,
    temporary_password: Optional[str] = None,
) -> bool:
    """
    Create (or repair) a SuperAdmin user.

    Returns:
        True if a new user was created, False if it already existed
    """
    attributes = [
        {"Name": "email", "Value": email},
        {"Name": "email_verified", "Value": "true"},
        {"Name": "custom:role", "Value": SUPER_ADMIN_GROUP},
        {"Name": "custom:approvalStatus", "Value": "approved"},
    ]
    if name:
        attributes.append({"Name": "name", "Value": name})

    params: dict[str, Any] = {
        "UserPoolId": user_pool_id,
        "Username": email,
        "UserAttributes": attributes,
        "DesiredDeliveryMediums": ["EMAIL"],
    }
    if temporary_password:
        params["TemporaryPassword"] = temporary_password

    created = True
    try:
        cognito.admin_create_user(**params)
    except ClientError as e:
        if e.response["Error"]["Code"] != "UsernameExistsException":
            raise
        created = False
        cognito.admin_update_user_attributes(
            UserPoolId=user_pool_id,
            Username=email,
            UserAttributes=[a for a in attributes if a["Name"] != "email"],
        )

    cognito.admin_add_user_to_group(UserPoolId=user_pool_id, Username=email, GroupName=SUPER_ADMIN_GROUP)
    return created


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a SuperAdmin user in the Cognito user pool")
    parser.add_argument("--email", required=True, help="Email address (also the username)")
    parser.add_argument("--name", help="Display name")
    parser.add_argument(
        "--user-pool-id",
        default=os.getenv("USER_POOL_ID"),
        help="Cognito user pool ID (default: $USER_POOL_ID)",
    )
    parser.add_argument("--temporary-password", help="Temporary password instead of a generated one")
    parser.add_argument("--region", default=os.getenv("AWS_REGION", "us-east-1"))

    args = parser.parse_args()

    if not args.user_pool_id:
        print("Error: --user-pool-id or USER_POOL_ID is required")
        return 1

    cognito = boto3.client("cognito-idp", region_name=args.region)
    created = create_super_admin(cognito, args.user_pool_id, args.email, args.name, args.temporary_password)

    if created:
        print(f"✓ Created SuperAdmin {args.email}; a temporary password was emailed")
    else:
        print(f"✓ {args.email} already existed; role and group membership updated")
    return 0


if __name__ == "__main__":
    sys.exit(main())
