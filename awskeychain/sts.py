"""
STS calls used by the token exchange.

Both calls make a single attempt. Access denied class failures become
RemoteRejected with the service message; anything else becomes RemoteError.
"""

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import RemoteError, RemoteRejected

ROLE_SESSION_DURATION = 3600  # 1 hour
MFA_SESSION_DURATION = 43200  # 12 hours

ACCESS_DENIED_CODES = frozenset(
    [
        "AccessDenied",
        "AccessDeniedException",
        "MultiFactorAuthentication",
        "ExpiredToken",
        "ExpiredTokenException",
    ]
)


def create_sts_client(access_key_id, secret_access_key, region=None):
    """
    Create an STS client for an explicit key pair.

    The client never falls back to the environment or ~/.aws/credentials.
    """
    session = boto3.Session(
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
    )
    return session.client("sts", region_name=region)


def _credentials(response):
    credentials = response["Credentials"]
    return {
        "AccessKeyId": credentials["AccessKeyId"],
        "SecretAccessKey": credentials["SecretAccessKey"],
        "SessionToken": credentials["SessionToken"],
        "Expiration": credentials["Expiration"],
    }


def _translate(error, action):
    if isinstance(error, ClientError):
        error_code = error.response.get("Error", {}).get("Code")
        error_msg = error.response.get("Error", {}).get("Message", str(error))
        if error_code in ACCESS_DENIED_CODES:
            return RemoteRejected(error_msg)
        if error_code == "InvalidClientTokenId":
            return RemoteError(
                f"{action} failed: the base credentials are not valid ({error_msg})"
            )
        return RemoteError(f"{action} failed: {error_msg}")
    return RemoteError(f"{action} failed: {error}")


def assume_role(
    client,
    role_arn,
    role_session_name,
    serial_number=None,
    token_code=None,
    duration_seconds=ROLE_SESSION_DURATION,
):
    """
    Assume a role.

    Args:
        client: STS client created for the base credential
        role_arn: ARN of the role to assume
        role_session_name: Session name recorded by STS
        serial_number: MFA device ARN, omitted when empty
        token_code: MFA code, omitted when not supplied
        duration_seconds: Requested session length

    Returns:
        dict with AccessKeyId, SecretAccessKey, SessionToken, Expiration

    Raises:
        RemoteRejected: Access denied by STS
        RemoteError: Any other failure
    """
    params = {
        "RoleArn": role_arn,
        "RoleSessionName": role_session_name,
        "DurationSeconds": duration_seconds,
    }
    if serial_number:
        params["SerialNumber"] = serial_number
    if token_code:
        params["TokenCode"] = token_code

    try:
        return _credentials(client.assume_role(**params))
    except (ClientError, BotoCoreError) as e:
        raise _translate(e, "AssumeRole") from e


def get_session_token(
    client, serial_number, token_code, duration_seconds=MFA_SESSION_DURATION
):
    """
    Get an MFA backed session token.

    Returns:
        dict with AccessKeyId, SecretAccessKey, SessionToken, Expiration

    Raises:
        RemoteRejected: Access denied by STS (e.g. wrong MFA code)
        RemoteError: Any other failure
    """
    try:
        response = client.get_session_token(
            SerialNumber=serial_number,
            TokenCode=token_code,
            DurationSeconds=duration_seconds,
        )
    except (ClientError, BotoCoreError) as e:
        raise _translate(e, "GetSessionToken") from e
    return _credentials(response)
