"""
Cognito user pool helpers.

Users sign in with their email address, which is also the Cognito username.
AWS error codes that handlers need to surface are translated to AppErrors;
everything else propagates.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from .dynamodb import get_required_env
from .errors import AppError, ErrorCode
from .logging import get_logger

if TYPE_CHECKING:
    from mypy_boto3_cognito_idp import CognitoIdentityProviderClient

logger = get_logger(__name__)


def _get_cognito_client() -> "CognitoIdentityProviderClient":
    return boto3.client("cognito-idp")


def _user_pool_id() -> str:
    return get_required_env("USER_POOL_ID")


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _attribute_list(attributes: Dict[str, Optional[str]]) -> List[Dict[str, str]]:
    return [{"Name": name, "Value": value} for name, value in attributes.items() if value is not None]


def sign_up(email: str, password: str, attributes: Dict[str, Optional[str]]) -> str:
    """
    Self-service sign up through the web client.

    Returns:
        The new user's ``sub``

    Raises:
        AppError: ALREADY_EXISTS or INVALID_INPUT for rejected sign ups
    """
    try:
        response = _get_cognito_client().sign_up(
            ClientId=get_required_env("USER_POOL_CLIENT_ID"),
            Username=email,
            Password=password,
            UserAttributes=_attribute_list({"email": email, **attributes}),
        )
    except ClientError as e:
        code = _error_code(e)
        if code == "UsernameExistsException":
            raise AppError(ErrorCode.ALREADY_EXISTS, "An account with this email already exists")
        if code == "InvalidPasswordException":
            raise AppError(ErrorCode.INVALID_INPUT, "Password does not meet the password policy")
        if code == "InvalidParameterException":
            raise AppError(ErrorCode.INVALID_INPUT, "Invalid registration details")
        raise
    return str(response["UserSub"])


def confirm_sign_up(email: str, code: str) -> None:
    """
    Confirm a sign up with the emailed verification code.

    Raises:
        AppError: INVALID_INPUT for a wrong or expired code, NOT_FOUND for an unknown user
    """
    try:
        _get_cognito_client().confirm_sign_up(
            ClientId=get_required_env("USER_POOL_CLIENT_ID"),
            Username=email,
            ConfirmationCode=code,
        )
    except ClientError as e:
        error_code = _error_code(e)
        if error_code == "CodeMismatchException":
            raise AppError(ErrorCode.INVALID_INPUT, "Invalid verification code")
        if error_code == "ExpiredCodeException":
            raise AppError(ErrorCode.INVALID_INPUT, "Verification code has expired")
        if error_code == "UserNotFoundException":
            raise AppError(ErrorCode.NOT_FOUND, "User not found")
        raise


def admin_create_user(email: str, attributes: Dict[str, Optional[str]]) -> str:
    """
    Create a user on behalf of an administrator; Cognito emails a temporary password.

    Returns:
        The new user's ``sub``

    Raises:
        AppError: ALREADY_EXISTS if the email is taken
    """
    try:
        response = _get_cognito_client().admin_create_user(
            UserPoolId=_user_pool_id(),
            Username=email,
            UserAttributes=_attribute_list({"email": email, "email_verified": "true", **attributes}),
            DesiredDeliveryMediums=["EMAIL"],
        )
    except ClientError as e:
        if _error_code(e) == "UsernameExistsException":
            raise AppError(ErrorCode.ALREADY_EXISTS, "An account with this email already exists")
        raise

    user_attributes = response.get("User", {}).get("Attributes", [])
    return _find_attribute(user_attributes, "sub") or email


def get_user_sub(email: str) -> Optional[str]:
    """Return the ``sub`` of an existing user, or None if there is no such user."""
    try:
        response = _get_cognito_client().admin_get_user(UserPoolId=_user_pool_id(), Username=email)
    except ClientError as e:
        if _error_code(e) == "UserNotFoundException":
            return None
        raise
    return _find_attribute(response.get("UserAttributes", []), "sub")


def update_user_attributes(email: str, attributes: Dict[str, Optional[str]]) -> None:
    _get_cognito_client().admin_update_user_attributes(
        UserPoolId=_user_pool_id(),
        Username=email,
        UserAttributes=_attribute_list(attributes),
    )


def add_user_to_group(email: str, group_name: str) -> None:
    _get_cognito_client().admin_add_user_to_group(
        UserPoolId=_user_pool_id(), Username=email, GroupName=group_name
    )


def remove_user_from_group(email: str, group_name: str) -> None:
    _get_cognito_client().admin_remove_user_from_group(
        UserPoolId=_user_pool_id(), Username=email, GroupName=group_name
    )


def disable_user(email: str) -> None:
    _get_cognito_client().admin_disable_user(UserPoolId=_user_pool_id(), Username=email)


def delete_user(email: str) -> bool:
    """
    Delete a Cognito user.

    Returns:
        False if the user did not exist in Cognito
    """
    try:
        _get_cognito_client().admin_delete_user(UserPoolId=_user_pool_id(), Username=email)
    except ClientError as e:
        if _error_code(e) == "UserNotFoundException":
            logger.warning("Cognito user already absent", email=email)
            return False
        raise
    return True


def _find_attribute(attributes: Any, name: str) -> Optional[str]:
    for attribute in attributes or []:
        if attribute.get("Name") == name:
            return str(attribute.get("Value"))
    return None
