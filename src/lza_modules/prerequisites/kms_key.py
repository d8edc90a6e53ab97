"""KMS key used by AWS Control Tower to encrypt landing zone logs."""

import json
import logging
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from ..core.aws_client import AWSClientManager
from ..core.exceptions import ServiceException
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)

CONTROL_TOWER_KEY_ALIAS = "alias/aws-controltower/key"
CONTROL_TOWER_KEY_DESCRIPTION = "AWS Control Tower Landing Zone encryption key"


def build_key_policy(partition: str, account_id: str, region: str) -> Dict[str, Any]:
    """Key policy letting the account administer the key and AWS Config and CloudTrail use it."""
    return {
        "Version": "2012-10-17",
        "Id": "CustomKMSPolicy",
        "Statement": [
            {
                "Sid": "Enable IAM User Permissions",
                "Effect": "Allow",
                "Principal": {"AWS": f"arn:{partition}:iam::{account_id}:root"},
                "Action": "kms:*",
                "Resource": "*",
            },
            {
                "Sid": "Allow Config to use KMS for encryption",
                "Effect": "Allow",
                "Principal": {"Service": "config.amazonaws.com"},
                "Action": ["kms:Decrypt", "kms:GenerateDataKey"],
                "Resource": "*",
            },
            {
                "Sid": "Allow CloudTrail to use KMS for encryption",
                "Effect": "Allow",
                "Principal": {"Service": "cloudtrail.amazonaws.com"},
                "Action": ["kms:GenerateDataKey*", "kms:Decrypt"],
                "Resource": "*",
                "Condition": {
                    "StringEquals": {
                        "aws:SourceArn": f"arn:{partition}:cloudtrail:{region}:{account_id}:trail/aws-controltower-BaselineCloudTrail"
                    },
                    "StringLike": {
                        "kms:EncryptionContext:aws:cloudtrail:arn": f"arn:{partition}:cloudtrail:*:{account_id}:trail/*"
                    },
                },
            },
        ],
    }


class KmsKeyManager:
    """Creates the Control Tower KMS key, reusing it when the alias exists."""

    def __init__(self, aws_client: AWSClientManager) -> None:
        self.aws_client = aws_client

    def _get_client(self) -> Any:
        return self.aws_client.get_client("kms")

    def get_key_arn_by_alias(self, alias: str = CONTROL_TOWER_KEY_ALIAS) -> Optional[str]:
        """Get the ARN of the key behind an alias, or None when the alias does not exist."""
        try:
            response = throttling_back_off(self._get_client().describe_key, KeyId=alias)
        except ClientError as e:
            if e.response["Error"]["Code"] == "NotFoundException":
                return None
            raise
        return (response.get("KeyMetadata") or {}).get("Arn")

    def create_control_tower_key(self, partition: str, account_id: str, region: str) -> str:
        """Create the key and its alias.

        Args:
            partition: AWS partition
            account_id: Management account ID
            region: Landing zone home region

        Returns:
            Key ARN

        Raises:
            ServiceException: When CreateKey returns no key ARN
        """
        existing_arn = self.get_key_arn_by_alias()
        if existing_arn:
            logger.info(f"AWS Control Tower KMS key {CONTROL_TOWER_KEY_ALIAS} already exists, reusing it")
            return existing_arn

        client = self._get_client()
        logger.info(f"Creating AWS Control Tower KMS key {CONTROL_TOWER_KEY_ALIAS}")
        response = throttling_back_off(
            client.create_key,
            Description=CONTROL_TOWER_KEY_DESCRIPTION,
            KeyUsage="ENCRYPT_DECRYPT",
            Policy=json.dumps(build_key_policy(partition, account_id, region)),
        )
        metadata = response.get("KeyMetadata") or {}
        if not metadata.get("Arn"):
            raise ServiceException("KMS CreateKey api did not return KeyMetadata Arn property.")

        throttling_back_off(client.create_alias, AliasName=CONTROL_TOWER_KEY_ALIAS, TargetKeyId=metadata["KeyId"])
        throttling_back_off(client.enable_key_rotation, KeyId=metadata["KeyId"])
        return metadata["Arn"]
