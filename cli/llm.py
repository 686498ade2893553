#!/usr/bin/env python3

import getpass
import sys
from llm.errors import LLMError
from llm.factory import get_completion_client
from llm.presets import ProviderType, list_presets
from logger import get_logger

logger = get_logger()


def _find_config(services, id_or_name: str):
    """Look up a saved configuration by id, id prefix or name."""
    configs = services.llm_configs.find_all()
    for config in configs:
        if config.id == id_or_name or config.name == id_or_name:
            return config
    matches = [c for c in configs if c.id.startswith(id_or_name)]
    if len(matches) == 1:
        return matches[0]

    logger.error(f"LLM config '{id_or_name}' not found.")
    logger.info("Use 'python -m cli llm list' to see saved configurations.")
    sys.exit(1)


def cmd_presets(args, services):
    """List the known providers and their defaults."""
    logger.info(f"\n{'Provider':<12} {'Name':<24} {'Default model':<28} Base URL")
    logger.info("=" * 100)
    for preset in list_presets():
        logger.info(
            f"{preset.provider_type.value:<12} {preset.display_name:<24} "
            f"{preset.default_model:<28} {preset.base_url}"
        )


def cmd_list(args, services):
    """List saved configurations, marking the active one."""
    configs = services.llm_configs.find_all()
    if not configs:
        logger.info("No LLM configurations. Add one with 'python -m cli llm add'.")
        return

    active = services.llm_configs.get_active()
    for config in configs:
        marker = "*" if active and config.id == active.id else " "
        logger.info(
            f"{marker} {config.id[:8]}  {config.name:<20} "
            f"{config.model_name:<24} {config.base_url}"
        )


def cmd_add(args, services):
    """Save a new endpoint configuration."""
    api_key = args.api_key
    if api_key is None and args.provider != ProviderType.OLLAMA.value:
        api_key = getpass.getpass("API key: ")
    api_key = api_key or "ollama"

    config = services.llm_configs.create(
        args.name or "",
        args.provider,
        api_key,
        base_url=args.base_url,
        model_name=args.model,
    )
    logger.info(f"\n✓ Saved LLM config with ID: {config.id}")
    logger.info(f"  Name: {config.name}")
    logger.info(f"  Endpoint: {config.base_url}")
    logger.info(f"  Model: {config.model_name}")


def cmd_update(args, services):
    """Change the endpoint, model, name or key of a saved configuration."""
    config = _find_config(services, args.config)
    api_key = getpass.getpass("New API key: ") if args.new_key else None
    config = services.llm_configs.update(
        config.id,
        name=args.name,
        base_url=args.base_url,
        model_name=args.model,
        api_key=api_key,
    )
    logger.info(f"✓ Updated '{config.name}' ({config.model_name} at {config.base_url})")


def cmd_use(args, services):
    """Make a configuration the active one."""
    config = _find_config(services, args.config)
    services.llm_configs.set_active(config.id)
    logger.info(f"✓ Now using '{config.name}'")


def cmd_delete(args, services):
    """Delete a configuration and its stored key."""
    config = _find_config(services, args.config)
    services.llm_configs.delete(config.id)
    logger.info(f"✓ Deleted '{config.name}'")

    active = services.llm_configs.get_active()
    if active:
        logger.info(f"  Active configuration: '{active.name}'")


def cmd_test(args, services):
    """Check that an endpoint answers at all."""
    if args.config:
        config = _find_config(services, args.config)
    else:
        config = services.llm_configs.get_active()

    api_key = services.llm_configs.get_api_key(config) if config else None
    try:
        client = get_completion_client(services.config, config, api_key)
        logger.info(f"Probing {client.endpoint} ...")
        reachable = client.probe(timeout=services.config.llm_probe_timeout)
    except LLMError as e:
        logger.error(e.user_message)
        sys.exit(1)

    if reachable:
        logger.info(f"✓ '{config.name}' is reachable")
    else:
        logger.error(f"'{config.name}' answered with a server error")
        sys.exit(1)


def setup_parser(subparsers):
    """Setup llm subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "llm",
        help="Manage LLM endpoint configurations",
        description="Save OpenAI-compatible endpoints and choose the active one",
    )

    llm_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available LLM commands",
        dest="subcommand",
        required=True,
    )

    presets_parser = llm_subparsers.add_parser("presets", help="List known providers")
    presets_parser.set_defaults(func=cmd_presets)

    list_parser = llm_subparsers.add_parser("list", help="List saved configurations")
    list_parser.set_defaults(func=cmd_list)

    add_parser = llm_subparsers.add_parser("add", help="Save a new configuration")
    add_parser.add_argument(
        "--provider",
        required=True,
        choices=[p.value for p in ProviderType],
        help="Provider preset",
    )
    add_parser.add_argument("--name", help="Display name (default: provider name)")
    add_parser.add_argument("--base-url", help="Override the preset endpoint")
    add_parser.add_argument("--model", help="Override the preset model")
    add_parser.add_argument(
        "--api-key", help="API key; prompted for when omitted"
    )
    add_parser.set_defaults(func=cmd_add)

    update_parser = llm_subparsers.add_parser(
        "update", help="Change a saved configuration"
    )
    update_parser.add_argument("config", help="Configuration id, id prefix or name")
    update_parser.add_argument("--name", help="New display name")
    update_parser.add_argument("--base-url", help="New endpoint")
    update_parser.add_argument("--model", help="New model name")
    update_parser.add_argument(
        "--new-key", action="store_true", help="Prompt for a new API key"
    )
    update_parser.set_defaults(func=cmd_update)

    use_parser = llm_subparsers.add_parser("use", help="Set the active configuration")
    use_parser.add_argument("config", help="Configuration id, id prefix or name")
    use_parser.set_defaults(func=cmd_use)

    delete_parser = llm_subparsers.add_parser("delete", help="Delete a configuration")
    delete_parser.add_argument("config", help="Configuration id, id prefix or name")
    delete_parser.set_defaults(func=cmd_delete)

    test_parser = llm_subparsers.add_parser("test", help="Check an endpoint responds")
    test_parser.add_argument(
        "config", nargs="?", help="Configuration to test (default: active)"
    )
    test_parser.set_defaults(func=cmd_test)
