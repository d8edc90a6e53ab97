"""STS helpers for resolving the identity a module acts as."""

import logging
from typing import Optional

from ..core.aws_client import AWSClientManager
from ..core.exceptions import InvalidInputError, ServiceException
from ..core.interfaces import AssumeRoleCredentials
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "AcceleratorAssumeRole"

GLOBAL_REGIONS = {
    "aws-us-gov": "us-gov-west-1",
    "aws-iso": "us-iso-east-1",
    "aws-iso-b": "us-isob-east-1",
    "aws-iso-e": "eu-isoe-west-1",
    "aws-iso-f": "us-isof-south-1",
    "aws-cn": "cn-northwest-1",
}


def get_global_region(partition: str) -> str:
    """Get the global service region of a partition."""
    return GLOBAL_REGIONS.get(partition, "us-east-1")


def get_credentials(
    client_manager: AWSClientManager,
    account_id: str,
    partition: Optional[str] = None,
    assume_role_name: Optional[str] = None,
    assume_role_arn: Optional[str] = None,
    session_name: str = DEFAULT_SESSION_NAME,
) -> Optional[AssumeRoleCredentials]:
    """Get credentials for acting inside a target account.

    Args:
        client_manager: Client manager of the calling identity
        account_id: Target account ID
        partition: AWS partition, required with ``assume_role_name``
        assume_role_name: Name of the role to assume in the target account
        assume_role_arn: Full ARN of the role to assume
        session_name: Role session name

    Returns:
        Assumed-role credentials, or None when the caller already is the role

    Raises:
        InvalidInputError: When the role is not specified exactly once
        ServiceException: When AssumeRole returns incomplete credentials
    """
    if assume_role_name and assume_role_arn:
        raise InvalidInputError("Either assumeRoleName or assumeRoleArn can be provided not both.")
    if not assume_role_name and not assume_role_arn:
        raise InvalidInputError("Either assumeRoleName or assumeRoleArn must provided.")

    if assume_role_name:
        if not partition:
            raise InvalidInputError("When assumeRoleName provided partition must be provided.")
        role_arn = f"arn:{partition}:iam::{account_id}:role/{assume_role_name}"
    else:
        role_arn = assume_role_arn

    sts_client = client_manager.get_client("sts")
    caller = throttling_back_off(sts_client.get_caller_identity)
    if caller.get("Arn") == role_arn:
        logger.info(f"Already running as {role_arn}, role assumption skipped")
        return None

    response = throttling_back_off(
        sts_client.assume_role, RoleArn=role_arn, RoleSessionName=session_name
    )
    credentials = response.get("Credentials")
    if not credentials:
        raise ServiceException("AssumeRole api did not return Credentials.")
    for key in ("AccessKeyId", "SecretAccessKey", "SessionToken"):
        if not credentials.get(key):
            raise ServiceException(f"AssumeRole api did not return {key}.")

    return AssumeRoleCredentials(
        access_key_id=credentials["AccessKeyId"],
        secret_access_key=credentials["SecretAccessKey"],
        session_token=credentials["SessionToken"],
        expiration=credentials.get("Expiration"),
    )
