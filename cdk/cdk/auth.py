"""Cognito User Pool authentication configuration for the HR analytics stack.

This module creates and configures:
- Cognito User Pool with email sign-in and the tenant custom attributes
- One Cognito group per role, ordered by precedence
- User Pool Client for the web portal
"""

from typing import Any

from aws_cdk import CfnOutput, RemovalPolicy
from aws_cdk import aws_cognito as cognito
from constructs import Construct

# (group name, description); list order is group precedence
ROLE_GROUPS: list[tuple[str, str]] = [
    ("SuperAdmins", "Platform administrators with access to every organization"),
    ("OrgAdmins", "Organization administrators"),
    ("HRManagers", "HR managers with organization-wide dashboards"),
    ("Supervisors", "Supervisors with team dashboards"),
    ("Employees", "Employees with access to their own metrics"),
]

CUSTOM_ATTRIBUTES: list[str] = ["organizationId", "role", "department", "supervisorId", "approvalStatus"]


def _create_password_policy() -> cognito.PasswordPolicy:
    """Create password policy for user pool."""
    return cognito.PasswordPolicy(
        min_length=12, require_lowercase=True, require_uppercase=True, require_digits=True, require_symbols=True
    )


def _create_custom_attributes() -> dict[str, cognito.ICustomAttribute]:
    return {name: cognito.StringAttribute(mutable=True) for name in CUSTOM_ATTRIBUTES}


def create_cognito_auth(
    scope: Construct,
    rn: Any,  # Resource naming function
    callback_urls: list[str],
) -> dict[str, Any]:
    """Create Cognito User Pool and related authentication resources.

    Args:
        scope: CDK construct scope
        rn: Resource naming function (name -> formatted name)
        callback_urls: Portal URLs allowed as OAuth callback/logout targets

    Returns:
        Dictionary containing user_pool, user_pool_client and groups
    """
    user_pool = cognito.UserPool(
        scope,
        "UserPool",
        user_pool_name=rn("hr-analytics-users"),
        sign_in_aliases=cognito.SignInAliases(email=True, username=False),
        self_sign_up_enabled=True,
        auto_verify=cognito.AutoVerifiedAttrs(email=True),
        standard_attributes=cognito.StandardAttributes(
            email=cognito.StandardAttribute(required=True, mutable=True),
            fullname=cognito.StandardAttribute(required=False, mutable=True),
        ),
        custom_attributes=_create_custom_attributes(),
        password_policy=_create_password_policy(),
        account_recovery=cognito.AccountRecovery.EMAIL_ONLY,
        mfa=cognito.Mfa.OPTIONAL,
        mfa_second_factor=cognito.MfaSecondFactor(sms=False, otp=True),
        removal_policy=RemovalPolicy.RETAIN,
    )

    groups: dict[str, cognito.CfnUserPoolGroup] = {}
    for precedence, (group_name, description) in enumerate(ROLE_GROUPS):
        groups[group_name] = cognito.CfnUserPoolGroup(
            scope,
            f"{group_name}Group",
            user_pool_id=user_pool.user_pool_id,
            group_name=group_name,
            description=description,
            precedence=precedence,
        )

    # Custom attributes are written by the backend only; clients may read them
    user_pool_client = user_pool.add_client(
        "WebClient",
        user_pool_client_name=rn("hr-analytics-web"),
        auth_flows=cognito.AuthFlow(user_srp=True, user_password=True),
        o_auth=cognito.OAuthSettings(
            flows=cognito.OAuthFlows(authorization_code_grant=True),
            scopes=[cognito.OAuthScope.EMAIL, cognito.OAuthScope.OPENID, cognito.OAuthScope.PROFILE],
            callback_urls=callback_urls,
            logout_urls=callback_urls,
        ),
        read_attributes=cognito.ClientAttributes()
        .with_standard_attributes(email=True, email_verified=True, fullname=True)
        .with_custom_attributes(*CUSTOM_ATTRIBUTES),
        write_attributes=cognito.ClientAttributes().with_standard_attributes(email=True, fullname=True),
        supported_identity_providers=[cognito.UserPoolClientIdentityProvider.COGNITO],
        prevent_user_existence_errors=True,
    )

    CfnOutput(scope, "UserPoolId", value=user_pool.user_pool_id, description="Cognito User Pool ID")
    CfnOutput(
        scope,
        "UserPoolClientId",
        value=user_pool_client.user_pool_client_id,
        description="Cognito User Pool Client ID",
    )

    return {
        "user_pool": user_pool,
        "user_pool_client": user_pool_client,
        "groups": groups,
    }
