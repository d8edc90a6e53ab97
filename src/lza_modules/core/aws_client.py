"""AWS client construction scoped to a single handler call.

A fresh ``AWSClientManager`` is built for every handler invocation (and for
every assumed-role identity within it), so no client or credential outlives
the call that created it.
"""

from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    NoCredentialsError,
    ClientError,
    ProfileNotFound,
)

from .interfaces import AssumeRoleCredentials


USER_AGENT_PREFIX = "lza-modules"


class AWSClientManager:
    """Builds boto3 clients for one region and one identity.

    Clients are cached on the instance only, keyed by service and region.
    """

    def __init__(
        self,
        region: str,
        solution_id: Optional[str] = None,
        credentials: Optional[AssumeRoleCredentials] = None,
        profile_name: Optional[str] = None,
    ) -> None:
        """Initialize AWS client manager.

        Args:
            region: Default region for clients
            solution_id: Optional identifier appended to the user agent
            credentials: Optional assumed-role credentials; ambient
                credentials are used when omitted
            profile_name: Optional AWS profile name for ambient credentials
        """
        self.region = region
        self.solution_id = solution_id
        self.credentials = credentials
        self._profile_name = profile_name
        self._session: Optional[boto3.Session] = None
        self._clients: Dict[str, Any] = {}

    def validate_credentials(self) -> None:
        """Validate AWS credentials are available and working.

        Raises:
            NoCredentialsError: When AWS credentials are not available
            ProfileNotFound: When specified profile doesn't exist
        """
        try:
            self.get_client("sts").get_caller_identity()
        except ProfileNotFound:
            raise ProfileNotFound(profile=self._profile_name)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("InvalidClientTokenId", "ExpiredToken"):
                raise NoCredentialsError() from e
            raise

    def _get_session(self) -> boto3.Session:
        """Get or create the boto3 session for this identity."""
        if self._session is None:
            if self.credentials:
                self._session = boto3.Session(
                    aws_access_key_id=self.credentials.access_key_id,
                    aws_secret_access_key=self.credentials.secret_access_key,
                    aws_session_token=self.credentials.session_token,
                    region_name=self.region,
                )
            elif self._profile_name:
                self._session = boto3.Session(
                    profile_name=self._profile_name, region_name=self.region
                )
            else:
                self._session = boto3.Session(region_name=self.region)
        return self._session

    def _client_config(self) -> Config:
        user_agent = USER_AGENT_PREFIX
        if self.solution_id:
            user_agent = f"{user_agent}/{self.solution_id}"
        return Config(user_agent_extra=user_agent, retries={"mode": "standard"})

    def get_client(self, service_name: str, region_name: Optional[str] = None) -> Any:
        """Get AWS service client.

        Args:
            service_name: AWS service name (e.g., 'organizations', 'controltower')
            region_name: Optional region; defaults to the manager's region

        Returns:
            Configured boto3 client for the service and region
        """
        region_name = region_name or self.region
        client_key = f"{service_name}_{region_name}"

        if client_key not in self._clients:
            self._clients[client_key] = self._get_session().client(
                service_name, region_name=region_name, config=self._client_config()
            )

        return self._clients[client_key]

