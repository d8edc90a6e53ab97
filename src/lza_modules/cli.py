"""Command line entry point for landing zone modules.

Usage::

    lza-modules <module-name> <operation> --configuration <json|file://path>
        --partition <partition> --region <region> [--dry-run] [--output json]
"""

import argparse
import functools
import json
import logging
import sys
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Type

from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, ProfileNotFound

from . import __version__
from .account_settings.account_alias import AccountAliasModule
from .account_settings.ebs_default_encryption import EbsDefaultEncryptionModule
from .account_settings.ssm_document_sharing import SsmDocumentSharingModule
from .common.sts import get_global_region
from .control_tower.register_organizational_unit import RegisterOrganizationalUnitModule
from .control_tower.setup_landing_zone import SetupLandingZoneModule
from .core.aws_client import AWSClientManager
from .core.base import ModuleBase
from .core.config import Configuration, ConfigurationError, load_module_configuration
from .core.exceptions import ModuleError
from .core.interfaces import HandlerResult, ModuleCommonParameter, ModuleHandlerReturnType, ModuleStatus
from .core.validator import validate_configuration
from .organizations.create_organizational_unit import CreateOrganizationalUnitModule
from .organizations.get_organizational_units_detail import GetOrganizationalUnitsDetailModule
from .organizations.invite_account import InviteAccountModule
from .organizations.invite_accounts_batch import InviteAccountsBatchModule
from .organizations.manage_policy import ManagePolicyModule
from .organizations.move_account import MoveAccountModule
from .organizations.move_accounts_batch import MoveAccountsBatchModule
from .quotas.lambda_concurrency import LambdaConcurrencyModule
from .quotas.service_quota import ServiceQuotaModule
from .security_services.detective import DetectiveOrganizationAdminModule
from .security_services.guardduty import GuardDutyOrganizationAdminModule
from .security_services.macie import MacieOrganizationAdminModule
from .security_services.security_hub import SecurityHubOrganizationAdminModule


logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("text", "json", "table")


class RegistryEntry(NamedTuple):
    module_class: Type[ModuleBase]
    #: Key of the module's section in the runtime settings file
    settings_key: str


MODULE_REGISTRY: Dict[Tuple[str, str], RegistryEntry] = {
    ("aws-organizations", "create-organizational-unit"): RegistryEntry(
        CreateOrganizationalUnitModule, "create-organizational-unit"
    ),
    ("aws-organizations", "invite-account-to-organization"): RegistryEntry(
        InviteAccountModule, "invite-account-to-organization"
    ),
    ("aws-organizations", "invite-accounts-batch-to-organization"): RegistryEntry(
        InviteAccountsBatchModule, "invite-accounts-batch-to-organization"
    ),
    ("aws-organizations", "move-account"): RegistryEntry(MoveAccountModule, "move-account"),
    ("aws-organizations", "move-accounts-batch"): RegistryEntry(MoveAccountsBatchModule, "move-accounts-batch"),
    ("aws-organizations", "get-organizational-units-detail"): RegistryEntry(
        GetOrganizationalUnitsDetailModule, "get-organizational-units-detail"
    ),
    ("aws-organizations", "manage-policy"): RegistryEntry(ManagePolicyModule, "manage-policy"),
    ("aws-control-tower", "register-organizational-unit"): RegistryEntry(
        RegisterOrganizationalUnitModule, "register-organizational-unit"
    ),
    ("aws-control-tower-landing-zone", "setup-landing-zone"): RegistryEntry(
        SetupLandingZoneModule, "setup-landing-zone"
    ),
    ("amazon-ec2", "manage-ebs-default-encryption"): RegistryEntry(
        EbsDefaultEncryptionModule, "manage-ebs-default-encryption"
    ),
    ("aws-ssm", "block-public-document-sharing"): RegistryEntry(
        SsmDocumentSharingModule, "block-public-document-sharing"
    ),
    ("aws-iam", "manage-account-alias"): RegistryEntry(AccountAliasModule, "manage-account-alias"),
    ("aws-guardduty", "manage-organization-admin"): RegistryEntry(GuardDutyOrganizationAdminModule, "aws-guardduty"),
    ("amazon-macie", "manage-organization-admin"): RegistryEntry(MacieOrganizationAdminModule, "amazon-macie"),
    ("aws-security-hub", "manage-organization-admin"): RegistryEntry(
        SecurityHubOrganizationAdminModule, "aws-security-hub"
    ),
    ("amazon-detective", "manage-organization-admin"): RegistryEntry(
        DetectiveOrganizationAdminModule, "amazon-detective"
    ),
    ("aws-lambda", "check-lambda-concurrency"): RegistryEntry(LambdaConcurrencyModule, "check-lambda-concurrency"),
    ("service-quotas", "check-service-quota"): RegistryEntry(ServiceQuotaModule, "check-service-quota"),
}


def list_operations() -> str:
    """Describe every registered module and operation for help output."""
    return "\n".join(f"  {module} {operation}" for module, operation in sorted(MODULE_REGISTRY))


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Arguments to parse, defaults to ``sys.argv[1:]``

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="lza-modules",
        description="Run a landing zone module against an AWS environment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Modules:
{list_operations()}

Examples:
  %(prog)s aws-organizations create-organizational-unit --configuration '{{"name": "Sandbox/Dev"}}' \\
      --partition aws --region us-east-1 --dry-run
  %(prog)s aws-control-tower-landing-zone setup-landing-zone --configuration file://landing-zone.yaml \\
      --partition aws --region us-east-1
        """,
    )

    parser.add_argument("module_name", help="Module name, e.g. aws-organizations")
    parser.add_argument("operation", help="Module operation, e.g. create-organizational-unit")
    parser.add_argument(
        "--configuration",
        required=True,
        help="Module configuration as inline JSON or file:// URI to a JSON or YAML file",
    )
    parser.add_argument("--partition", required=True, help="AWS partition, e.g. aws or aws-us-gov")
    parser.add_argument("--region", required=True, help="Home region")
    parser.add_argument("--account", help="AWS account ID the module runs against")
    parser.add_argument("--profile", help="AWS profile name to use for credentials")
    parser.add_argument("--settings", help="Runtime settings file (default: $LZA_MODULES_CONFIG)")
    parser.add_argument(
        "--use-existing-role",
        action="store_true",
        help="Use existing AWS Control Tower service roles instead of creating them",
    )
    parser.add_argument("--wait", action="store_true", help="Wait for the module to complete (always the case)")
    parser.add_argument("--dry-run", action="store_true", help="Report what would change without changing anything")
    parser.add_argument("--output", choices=OUTPUT_FORMATS, default="text", help="Output format")
    parser.add_argument("--verbose", action="store_true", help="Show progress logging")
    parser.add_argument("--version", action="version", version=f"lza-modules v{__version__}")

    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def format_result(result: HandlerResult, output: str, module_name: str) -> str:
    """Render a handler result.

    Args:
        result: Status string or result envelope
        output: One of ``text``, ``json`` or ``table``
        module_name: Module name used when the handler returned a string

    Returns:
        Printable result
    """
    if isinstance(result, ModuleHandlerReturnType):
        envelope = result.to_dict()
    else:
        envelope = {"status": ModuleStatus.SUCCESS.value, "message": result, "moduleName": module_name}

    if output == "json":
        return json.dumps(envelope, indent=2, default=str)

    if output == "table":
        rows = [(key, value if isinstance(value, str) else json.dumps(value, default=str)) for key, value in envelope.items()]
        width = max(len(key) for key, _ in rows)
        lines = ["-" * 50]
        for key, value in rows:
            value_lines = str(value).splitlines() or [""]
            lines.append(f"{key.ljust(width)} | {value_lines[0]}")
            lines.extend(f"{' ' * width} | {line}" for line in value_lines[1:])
        lines.append("-" * 50)
        return "\n".join(lines)

    return envelope["message"]


def run(args: argparse.Namespace, client_factory: Optional[Any] = None) -> int:
    """Run one module invocation.

    Args:
        args: Parsed command line arguments
        client_factory: Optional client manager factory for the module

    Returns:
        Exit code (0 for success, 1 for any failure)
    """
    entry = MODULE_REGISTRY.get((args.module_name, args.operation))
    if entry is None:
        print(
            f'Unknown module operation "{args.module_name} {args.operation}". Available:\n{list_operations()}',
            file=sys.stderr,
        )
        return 1

    try:
        settings = Configuration(args.settings)
        raw_configuration = load_module_configuration(args.configuration)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    validation = validate_configuration(entry.module_class.configuration_type, raw_configuration)
    if not validation.passed:
        print(f"Configuration error: {validation.message}", file=sys.stderr)
        return 1

    if client_factory is None:
        client_factory = functools.partial(
            AWSClientManager, profile_name=args.profile or settings.get_profile_name()
        )
        try:
            client_factory(region=args.region, solution_id=settings.get_solution_id()).validate_credentials()
        except (NoCredentialsError, ProfileNotFound) as e:
            print(f"AWS client initialization failed: {e}", file=sys.stderr)
            return 1

    parameter = ModuleCommonParameter(
        operation=args.operation,
        partition=args.partition,
        region=args.region,
        account=args.account,
        solution_id=settings.get_solution_id(),
        dry_run=args.dry_run,
        module_name=args.module_name,
        global_region=get_global_region(args.partition),
        use_existing_role=args.use_existing_role,
    )

    module = entry.module_class(
        client_factory=client_factory,
        settings=settings.get_module_settings(entry.settings_key),
    )

    logger.info(f"Running {args.module_name} {args.operation}{' in dry-run mode' if args.dry_run else ''}")
    try:
        result = module.handler(parameter, validation.configuration)
    except ModuleError as e:
        print(str(e), file=sys.stderr)
        return 1
    except (ClientError, BotoCoreError) as e:
        print(f"AWS error: {e}", file=sys.stderr)
        return 1

    print(format_result(result, args.output, args.module_name))

    if isinstance(result, ModuleHandlerReturnType) and result.status is ModuleStatus.FAILED:
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    args = parse_arguments(argv)
    configure_logging(args.verbose)
    try:
        return run(args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
