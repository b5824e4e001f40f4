"""
Command-line interface: generate, validate and inspect tokens, and manage
claims templates and export files.

Run without arguments for the interactive menu.
"""
import argparse
import json
import logging
import os
import sys
from typing import Dict, List, Optional

from dotenv import load_dotenv

from jwt_validator.config.jwt_config import DEFAULT_CONFIG_PATH, ConfigError, JWTSettings
from jwt_validator.security import (
    ClaimsError,
    JwtService,
    KeyLoadError,
    VerificationResult,
    parse_claim_pairs,
    parse_claims,
)
from jwt_validator.storage.export_import import ExportError, ExportImportService

logger = logging.getLogger(__name__)

LIST_TYPES = ("tokens", "templates", "exports")


class CommandError(Exception):
    """User input the command cannot act on."""
    pass


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def load_service(config_path: str) -> JwtService:
    """Load settings and build the token engine."""
    settings = JWTSettings.from_file(config_path)
    service = JwtService(settings)
    if service.strategy.fallback:
        logger.warning(
            "Unrecognised algorithm %r, falling back to %s",
            settings.algorithm,
            service.algorithm,
        )
    logger.debug("Using %s with issuer=%s audience=%s", service.algorithm, settings.issuer, settings.audience)
    return service


def resolve_claims(
    store: ExportImportService,
    claims_json: Optional[str],
    template_name: Optional[str] = None,
) -> Dict[str, str]:
    """Merge template claims with explicit JSON claims; explicit claims win."""
    claims: Dict[str, str] = {}
    if template_name:
        template = store.get_claims_template(template_name)
        if template is None:
            raise CommandError(f"Claims template '{template_name}' not found.")
        claims.update(template.claims)

    parsed = parse_claims(claims_json)
    if not parsed.ok:
        raise CommandError(
            f"{parsed.error}. Please use format like: "
            '{"role":"admin","permissions":"read"}'
        )
    if parsed.claims:
        claims.update(parsed.claims)
    return claims


def print_result(result: VerificationResult, pretty: bool) -> None:
    if not result.valid:
        print(f"Token invalid ({result.error.value}): {result.message}")
        return

    print("Token is valid!")
    if pretty:
        print("\nClaims:")
        print("-" * 50)
        for name, value in result.claims.items():
            print(f"{name}: {value}")
    else:
        print(json.dumps(result.claims))


# Subcommand handlers


def handle_generate(args: argparse.Namespace, store: ExportImportService) -> int:
    if not args.subject:
        raise CommandError("Subject is required. Use --subject or -s option.")

    logger.debug("Loading configuration from: %s", args.config)
    service = load_service(args.config)
    claims = resolve_claims(store, args.claims, args.template)

    token = service.generate_token(args.subject, claims or None)
    store.add_generated_token(args.subject, claims, token)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(token)
        print(f"Token generated and saved to: {args.output}")
    else:
        print(token)
    return 0


def handle_validate(args: argparse.Namespace, store: ExportImportService) -> int:
    if not args.token:
        raise CommandError("Token is required for validation. Use --token or -t option.")

    service = load_service(args.config)
    result = service.validate_token(args.token)
    print_result(result, args.pretty)
    return 0 if result.valid else 1


def handle_decode(args: argparse.Namespace, store: ExportImportService) -> int:
    if not args.token:
        raise CommandError("Token is required. Use --token or -t option.")

    service = load_service(args.config)
    decoded = service.decode_unverified(args.token)
    if decoded is None:
        raise CommandError("Token is malformed.")

    header, payload = decoded
    print("WARNING: signature and claims were NOT verified.")
    print(json.dumps({"header": header, "payload": payload}, indent=2))
    return 0


def handle_export(args: argparse.Namespace, store: ExportImportService) -> int:
    include_tokens = args.include_tokens
    include_templates = args.include_templates
    include_settings = args.include_settings
    if not (include_tokens or include_templates or include_settings):
        include_tokens = include_templates = include_settings = True

    settings = JWTSettings.from_file(args.config) if include_settings else None
    export_file = args.export_file or store.generate_default_export_path()

    print(store.export_to_file(
        export_file,
        jwt_settings=settings,
        include_tokens=include_tokens,
        include_templates=include_templates,
        include_settings=include_settings,
    ))
    return 0


def handle_import(args: argparse.Namespace, store: ExportImportService) -> int:
    import_file = args.import_file
    if not import_file:
        available = store.get_available_export_files()
        if not available:
            raise CommandError("No import file given and no export files found.")
        import_file = os.path.join(str(store.export_dir), available[0])
        logger.info("No import file given, using latest export %s", import_file)

    result = store.import_from_file(import_file)
    print(result.message)
    for error in result.errors:
        print(f"  - {error}")
    return 0 if result.success else 1


def handle_create_template(args: argparse.Namespace, store: ExportImportService) -> int:
    name = args.template_name or input("Enter template name: ").strip()
    if not name:
        raise CommandError("Template name is required.")

    description = args.template_description
    if description is None:
        description = input("Enter template description: ").strip()

    claims = resolve_claims(store, args.claims)
    if not claims:
        claims = prompt_claim_pairs()

    store.add_claims_template(name, description, claims)
    print(f"Template '{name}' created successfully with {len(claims)} claims.")
    if args.verbose:
        print(f"Description: {description}")
        for key, value in claims.items():
            print(f"  - {key}: {value}")
    return 0


def handle_list(args: argparse.Namespace, store: ExportImportService) -> int:
    if args.type == "tokens":
        tokens = store.get_generated_tokens()
        if not tokens:
            print("No tokens generated yet.")
        for index, item in enumerate(tokens, start=1):
            print(f"{index}. {item.subject} ({item.generated_at.isoformat()})")
            if args.verbose:
                for key, value in item.claims.items():
                    print(f"     {key}: {value}")
                print(f"     {item.token}")
    elif args.type == "templates":
        templates = store.get_claims_templates()
        if not templates:
            print("No claims templates defined.")
        for template in templates:
            print(f"- {template.name}: {template.description} ({len(template.claims)} claims)")
    elif args.type == "exports":
        files = store.get_available_export_files()
        if not files:
            print("No export files found in exports directory.")
        for name in files:
            print(f"- {name}")
    else:
        print("Available list types:")
        print("  tokens    - List generated tokens")
        print("  templates - List claims templates")
        print("  exports   - List export files")
    return 0


def prompt_claim_pairs() -> Dict[str, str]:
    print("Enter claims (key=value format, one per line, empty line to finish):")
    lines: List[str] = []
    while True:
        line = input("> ").strip()
        if not line:
            break
        lines.append(line)
    claims, rejected = parse_claim_pairs(lines)
    for line in rejected:
        print(f"Ignored invalid line {line!r}. Use: key=value")
    return claims


# Interactive mode

MENU = """
============= MENU =============
 [1] Generate new JWT token
 [2] Validate existing token
 [3] Create claims template
 [4] List generated tokens
 [5] List claims templates
 [6] Export data
 [7] Import data
 [0] Exit
================================"""


def run_interactive(args: argparse.Namespace, store: ExportImportService) -> int:
    service = load_service(args.config)
    print(f"JWT Validator ({service.algorithm}, issuer={service.settings.issuer})")

    while True:
        print(MENU)
        option = input("\n > Choose an option: ").strip()

        try:
            if option == "1":
                interactive_generate(service, store)
            elif option == "2":
                token = input("\nEnter the token to be validated:\n> ").strip()
                print_result(service.validate_token(token), pretty=True)
            elif option == "3":
                handle_create_template(
                    argparse.Namespace(
                        template_name=None, template_description=None,
                        claims=None, verbose=args.verbose,
                    ),
                    store,
                )
            elif option == "4":
                handle_list(argparse.Namespace(type="tokens", verbose=True), store)
            elif option == "5":
                handle_list(argparse.Namespace(type="templates", verbose=False), store)
            elif option == "6":
                path = input("Export file (empty for default): ").strip()
                print(store.export_to_file(
                    path or store.generate_default_export_path(),
                    jwt_settings=service.settings,
                ))
            elif option == "7":
                path = input("Import file: ").strip()
                print(store.import_from_file(path).message)
            elif option == "0":
                print("\nExiting...")
                return 0
            else:
                print("Invalid option.")
        except (CommandError, ClaimsError, ExportError) as e:
            print(f"Error: {e}")


def interactive_generate(service: JwtService, store: ExportImportService) -> None:
    subject = input("\nEnter the subject (ex: email or ID): ").strip()
    if not subject:
        raise CommandError("Subject is required.")

    template_name = input("Claims template (empty for none): ").strip()
    claims = resolve_claims(store, None, template_name or None)
    if not claims:
        claims = prompt_claim_pairs()

    token = service.generate_token(subject, claims or None)
    store.add_generated_token(subject, claims, token)
    print("\nToken generated successfully:\n")
    print(token)


# Argument parsing


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jwt-validator",
        description="JWT Validator CLI - Generate and validate JWT tokens",
    )
    parser.add_argument("-f", "--config", default=DEFAULT_CONFIG_PATH,
                        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument("--state-file",
                        help="JSON snapshot of tokens/templates loaded at start and saved on exit")
    parser.add_argument("--export-dir", default="exports", help="Directory for export files")

    # Repeated on each subcommand; SUPPRESS keeps the root values when omitted
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-f", "--config", default=argparse.SUPPRESS,
                        help="Path to configuration file")
    common.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS,
                        help="Enable verbose output")

    subparsers = parser.add_subparsers(dest="command")

    generate = subparsers.add_parser("generate", parents=[common], help="Generate a new JWT token")
    generate.add_argument("-s", "--subject", help="Subject for the JWT token (e.g., email or user ID)")
    generate.add_argument("-c", "--claims",
                          help='Additional claims in JSON format (e.g., \'{"role":"admin"}\')')
    generate.add_argument("-n", "--template", help="Name of a claims template to apply")
    generate.add_argument("-o", "--output", help="Output file path to save the generated token")
    generate.set_defaults(handler=handle_generate)

    validate = subparsers.add_parser("validate", parents=[common], help="Validate a JWT token")
    validate.add_argument("-t", "--token", help="JWT token to validate")
    validate.add_argument("-p", "--pretty", action="store_true", help="Pretty print validation results")
    validate.set_defaults(handler=handle_validate)

    decode = subparsers.add_parser("decode", parents=[common],
                                   help="Show a token's header and payload without verifying it")
    decode.add_argument("-t", "--token", help="JWT token to decode")
    decode.set_defaults(handler=handle_decode)

    export = subparsers.add_parser("export", parents=[common],
                                   help="Export tokens, templates, and settings")
    export.add_argument("-e", "--export-file", help="File path for export")
    export.add_argument("--include-tokens", action="store_true", help="Include generated tokens in export")
    export.add_argument("--include-templates", action="store_true", help="Include claims templates in export")
    export.add_argument("--include-settings", action="store_true", help="Include JWT settings in export")
    export.set_defaults(handler=handle_export)

    import_ = subparsers.add_parser("import", parents=[common], help="Import tokens and templates")
    import_.add_argument("-i", "--import-file", help="File path for import")
    import_.set_defaults(handler=handle_import)

    template = subparsers.add_parser("create-template", parents=[common], help="Create a claims template")
    template.add_argument("-n", "--template-name", help="Name for the claims template")
    template.add_argument("-d", "--template-description", help="Description for the claims template")
    template.add_argument("-c", "--claims", help="Template claims in JSON format")
    template.set_defaults(handler=handle_create_template)

    list_ = subparsers.add_parser("list", parents=[common], help="List tokens, templates, or exports")
    list_.add_argument("--type", choices=LIST_TYPES, help="Type to list: tokens, templates, exports")
    list_.set_defaults(handler=handle_list)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    store = ExportImportService(export_dir=args.export_dir)
    save_state = bool(args.state_file)
    if args.state_file and os.path.exists(args.state_file):
        result = store.import_from_file(args.state_file)
        if not result.success:
            # leave an unreadable snapshot untouched
            save_state = False
            logger.warning(
                "Could not load state file %s, it will not be updated: %s",
                args.state_file, result.message,
            )

    try:
        if args.command is None:
            return run_interactive(args, store)
        return args.handler(args, store)
    except (ConfigError, KeyLoadError, ClaimsError, CommandError, ExportError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (EOFError, KeyboardInterrupt):
        print("\nExiting...")
        return 0
    finally:
        if save_state:
            try:
                store.export_to_file(args.state_file, include_settings=False)
            except ExportError as e:
                logger.error("Could not save state file %s: %s", args.state_file, e)


if __name__ == "__main__":
    sys.exit(main())
