"""Unit tests for landing zone prerequisites."""

import json

import pytest
from botocore.exceptions import ClientError

from lza_modules.control_tower.setup_landing_zone import SharedAccountConfiguration
from lza_modules.core.exceptions import InvalidInputError, ServiceException
from lza_modules.prerequisites.accounts import AccountManager, create_shared_accounts
from lza_modules.prerequisites.iam_roles import IAMRolesManager
from lza_modules.prerequisites.kms_key import CONTROL_TOWER_KEY_ALIAS, KmsKeyManager, build_key_policy
from lza_modules.prerequisites.organizations import OrganizationsManager

from conftest import client_error

MANAGEMENT = {"Id": "111111111111", "Name": "Management", "Email": "mgmt@example.com"}
LOG_ARCHIVE = {"Id": "222222222222", "Name": "LogArchive", "Email": "log@example.com"}
AUDIT = {"Id": "333333333333", "Name": "Audit", "Email": "audit@example.com"}


class TestOrganizationsManager:
    """Test cases for OrganizationsManager class."""

    @pytest.fixture(autouse=True)
    def setup(self, aws_clients, client_manager, no_backoff_sleep):
        self.organizations = aws_clients["organizations"]
        self.sso_admin = aws_clients["sso-admin"]
        self.organizations.describe_organization.return_value = {
            "Organization": {"Id": "o-1", "FeatureSet": "ALL"}
        }
        self.organizations.list_aws_service_access_for_organization.return_value = {"EnabledServicePrincipals": []}
        self.organizations.list_roots.return_value = {"Roots": [{"Id": "r-1"}]}
        self.organizations.list_organizational_units_for_parent.return_value = {"OrganizationalUnits": []}
        self.organizations.list_accounts.return_value = {"Accounts": [MANAGEMENT]}
        self.sso_admin.list_instances.return_value = {"Instances": []}
        self.client_manager = client_manager
        self.manager = OrganizationsManager(client_manager, "us-east-1")

    def test_validate_empty_organization(self):
        self.manager.validate("aws", LOG_ARCHIVE["Email"], AUDIT["Email"])

        self.organizations.enable_all_features.assert_not_called()
        self.client_manager.get_client.assert_any_call("organizations", "us-east-1")

    def test_validate_enables_all_features(self):
        self.organizations.describe_organization.return_value = {
            "Organization": {"Id": "o-1", "FeatureSet": "CONSOLIDATED_BILLING"}
        }

        self.manager.validate("aws", LOG_ARCHIVE["Email"], AUDIT["Email"])

        self.organizations.enable_all_features.assert_called_once()

    def test_validate_reports_every_issue(self):
        self.sso_admin.list_instances.return_value = {"Instances": [{"IdentityStoreId": "d-1"}]}
        self.organizations.list_aws_service_access_for_organization.return_value = {
            "EnabledServicePrincipals": [{"ServicePrincipal": "config.amazonaws.com"}]
        }
        self.organizations.list_organizational_units_for_parent.return_value = {
            "OrganizationalUnits": [{"Id": "ou-1", "Name": "Existing"}]
        }
        self.organizations.list_accounts.return_value = {"Accounts": [MANAGEMENT, LOG_ARCHIVE]}

        with pytest.raises(InvalidInputError) as exc_info:
            self.manager.validate("aws", LOG_ARCHIVE["Email"], AUDIT["Email"])

        message = str(exc_info.value)
        assert "has 4 issue(s)" in message
        assert "IAM Identity Center is configured" in message
        assert "services enabled" in message
        assert "multiple organizational units" in message
        assert "multiple accounts" in message
        self.organizations.enable_all_features.assert_not_called()

    def test_validate_organizations_not_configured(self):
        self.organizations.describe_organization.side_effect = client_error("AWSOrganizationsNotInUseException")

        with pytest.raises(InvalidInputError) as exc_info:
            self.manager.validate("aws", LOG_ARCHIVE["Email"], AUDIT["Email"])

        assert "have not been configured" in str(exc_info.value)

    def test_validate_gov_cloud_requires_shared_accounts(self):
        self.organizations.list_accounts.return_value = {"Accounts": [MANAGEMENT, LOG_ARCHIVE, AUDIT]}

        self.manager.validate("aws-us-gov", LOG_ARCHIVE["Email"], AUDIT["Email"])

        self.organizations.list_accounts.return_value = {"Accounts": [MANAGEMENT]}
        with pytest.raises(InvalidInputError) as exc_info:
            self.manager.validate("aws-us-gov", LOG_ARCHIVE["Email"], AUDIT["Email"])

        assert "required shared accounts" in str(exc_info.value)

    def test_get_account_by_email(self):
        assert self.manager.get_account_by_email("MGMT@example.com")["Id"] == MANAGEMENT["Id"]

        with pytest.raises(InvalidInputError):
            self.manager.get_account_by_email("missing@example.com")


class TestAccountManager:
    """Test cases for AccountManager class."""

    @pytest.fixture(autouse=True)
    def setup(self, aws_clients, client_manager, sleep, no_backoff_sleep):
        self.organizations = aws_clients["organizations"]
        self.organizations.list_accounts.return_value = {"Accounts": [MANAGEMENT]}
        self.organizations.create_account.return_value = {"CreateAccountStatus": {"Id": "car-1"}}
        self.organizations.describe_create_account_status.return_value = {
            "CreateAccountStatus": {"State": "SUCCEEDED", "AccountId": LOG_ARCHIVE["Id"]}
        }
        self.sleep = sleep
        self.manager = AccountManager(client_manager, "us-east-1", sleep=sleep, interval_seconds=30, max_attempts=3)

    def test_creates_missing_account(self):
        assert self.manager.ensure_account("LogArchive", LOG_ARCHIVE["Email"]) == LOG_ARCHIVE["Id"]

        self.organizations.create_account.assert_called_once_with(AccountName="LogArchive", Email=LOG_ARCHIVE["Email"])
        self.organizations.describe_create_account_status.assert_called_once_with(CreateAccountRequestId="car-1")

    def test_existing_account_reused(self):
        self.organizations.list_accounts.return_value = {"Accounts": [MANAGEMENT, LOG_ARCHIVE]}

        assert self.manager.ensure_account("LogArchive", LOG_ARCHIVE["Email"]) == LOG_ARCHIVE["Id"]
        self.organizations.create_account.assert_not_called()

    def test_invalid_email(self):
        with pytest.raises(InvalidInputError):
            self.manager.ensure_account("LogArchive", "not-an-email")

        self.organizations.list_accounts.assert_not_called()

    def test_creation_failed(self):
        self.organizations.describe_create_account_status.return_value = {
            "CreateAccountStatus": {"State": "FAILED", "FailureReason": "EMAIL_ALREADY_EXISTS"}
        }

        with pytest.raises(ServiceException) as exc_info:
            self.manager.create_account("LogArchive", LOG_ARCHIVE["Email"])

        assert "EMAIL_ALREADY_EXISTS" in str(exc_info.value)

    def test_creation_timeout(self):
        self.organizations.describe_create_account_status.return_value = {
            "CreateAccountStatus": {"State": "IN_PROGRESS"}
        }

        with pytest.raises(ServiceException) as exc_info:
            self.manager.create_account("LogArchive", LOG_ARCHIVE["Email"])

        assert "timed out after 90 seconds" in str(exc_info.value)
        assert self.sleep.call_count == 2

    def test_create_shared_accounts(self):
        self.organizations.list_accounts.return_value = {"Accounts": [MANAGEMENT, AUDIT]}

        result = create_shared_accounts(
            self.manager,
            SharedAccountConfiguration("LogArchive", LOG_ARCHIVE["Email"]),
            SharedAccountConfiguration("Audit", AUDIT["Email"]),
        )

        assert result == {"log_archive": LOG_ARCHIVE["Id"], "audit": AUDIT["Id"]}
        self.organizations.create_account.assert_called_once()


class TestIAMRolesManager:
    """Test cases for IAMRolesManager class."""

    @pytest.fixture(autouse=True)
    def setup(self, aws_clients, client_manager, no_backoff_sleep):
        self.iam = aws_clients["iam"]
        self.iam.get_role.side_effect = client_error("NoSuchEntity")
        self.manager = IAMRolesManager(client_manager, "aws-us-gov")

    def test_creates_all_roles(self):
        self.manager.create_control_tower_roles()

        created = [call.kwargs["RoleName"] for call in self.iam.create_role.call_args_list]
        assert created == list(IAMRolesManager.CONTROL_TOWER_ROLES)
        assert all(call.kwargs["Path"] == "/service-role/" for call in self.iam.create_role.call_args_list)
        assert self.iam.put_role_policy.call_count == 3
        assert self.iam.attach_role_policy.call_count == 2
        self.iam.get_waiter.assert_called_with("role_exists")

    def test_partition_filled_into_policies(self):
        self.manager.create_control_tower_roles()

        policy_arns = [call.kwargs["PolicyArn"] for call in self.iam.attach_role_policy.call_args_list]
        assert "arn:aws-us-gov:iam::aws:policy/service-role/AWSControlTowerServiceRolePolicy" in policy_arns
        documents = [json.loads(call.kwargs["PolicyDocument"]) for call in self.iam.put_role_policy.call_args_list]
        assert "{partition}" not in json.dumps(documents)

    def test_trust_policy(self):
        self.manager.create_control_tower_roles()

        first = self.iam.create_role.call_args_list[0].kwargs
        trust = json.loads(first["AssumeRolePolicyDocument"])
        assert trust["Statement"][0]["Principal"] == {"Service": ["controltower.amazonaws.com"]}

    def test_existing_role_blocks_creation(self):
        self.iam.get_role.side_effect = lambda RoleName: (
            {"Role": {"RoleName": RoleName}} if RoleName == "AWSControlTowerAdmin" else _raise_no_such_entity()
        )

        with pytest.raises(InvalidInputError) as exc_info:
            self.manager.create_control_tower_roles()

        assert "AWSControlTowerAdmin" in str(exc_info.value)
        self.iam.create_role.assert_not_called()

    def test_get_role_other_error(self):
        self.iam.get_role.side_effect = client_error("AccessDenied")

        with pytest.raises(ClientError):
            self.manager.role_exists("AWSControlTowerAdmin")


def _raise_no_such_entity():
    raise client_error("NoSuchEntity")


class TestKmsKeyManager:
    """Test cases for KmsKeyManager class."""

    @pytest.fixture(autouse=True)
    def setup(self, aws_clients, client_manager, no_backoff_sleep):
        self.kms = aws_clients["kms"]
        self.kms.describe_key.side_effect = client_error("NotFoundException")
        self.kms.create_key.return_value = {"KeyMetadata": {"KeyId": "key-1", "Arn": "arn:aws:kms:us-east-1:111:key/key-1"}}
        self.manager = KmsKeyManager(client_manager)

    def test_creates_key_alias_and_rotation(self):
        arn = self.manager.create_control_tower_key("aws", "111111111111", "us-east-1")

        assert arn == "arn:aws:kms:us-east-1:111:key/key-1"
        self.kms.create_alias.assert_called_once_with(AliasName=CONTROL_TOWER_KEY_ALIAS, TargetKeyId="key-1")
        self.kms.enable_key_rotation.assert_called_once_with(KeyId="key-1")
        policy = json.loads(self.kms.create_key.call_args.kwargs["Policy"])
        assert policy == build_key_policy("aws", "111111111111", "us-east-1")

    def test_existing_alias_reused(self):
        self.kms.describe_key.side_effect = None
        self.kms.describe_key.return_value = {"KeyMetadata": {"Arn": "arn:existing"}}

        assert self.manager.create_control_tower_key("aws", "111111111111", "us-east-1") == "arn:existing"
        self.kms.create_key.assert_not_called()

    def test_create_key_without_arn(self):
        self.kms.create_key.return_value = {"KeyMetadata": {"KeyId": "key-1"}}

        with pytest.raises(ServiceException):
            self.manager.create_control_tower_key("aws", "111111111111", "us-east-1")

    def test_key_policy_scopes_cloudtrail(self):
        policy = build_key_policy("aws", "111111111111", "eu-west-1")

        cloudtrail = policy["Statement"][2]
        assert cloudtrail["Condition"]["StringEquals"]["aws:SourceArn"] == (
            "arn:aws:cloudtrail:eu-west-1:111111111111:trail/aws-controltower-BaselineCloudTrail"
        )
