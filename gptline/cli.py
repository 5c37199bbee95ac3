#!/usr/bin/env python3
"""
gptline CLI: chat with any OpenAI-compatible endpoint from the terminal.

    COMMAND         ALIASES         WHAT IT DOES
    -------         -------         ----------------------------------
    chat            talk            Start an interactive chat (default)
    setup           init            Re-run first-time setup, rewrite config
    flash           info, config    Show the effective configuration
    tone            banner          Print the banner
"""

import argparse
import logging
import sys
from pathlib import Path

from gptline.config import (
    Config,
    ConfigError,
    default_config_path,
    load_or_init_config,
    prompt_for_config,
    save_config,
)

__version__ = "0.1.0"

BANNER = r"""
   ____ ____ _____ _     ___ _   _ _____
  / ___|  _ \_   _| |   |_ _| \ | | ____|
 | |  _| |_) || | | |    | ||  \| |  _|
 | |_| |  __/ | | | |___ | || |\  | |___
  \____|_|    |_| |_____|___|_| \_|_____|
"""


def setup_logging(cfg: Config, verbose: bool = False):
    log_cfg = cfg.logging or {}
    level = getattr(logging, str(log_cfg.get("level", "WARNING")).upper(), logging.WARNING)
    if verbose:
        level = logging.DEBUG
    log_file = log_cfg.get("file")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).expanduser().parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(Path(log_file).expanduser()))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def _config_path(args) -> Path:
    return Path(args.config).expanduser() if args.config else default_config_path()


def _load(args) -> Config:
    cfg = load_or_init_config(_config_path(args))
    if getattr(args, "endpoint", None):
        cfg.api_endpoint = args.endpoint
    if getattr(args, "model", None):
        cfg.model = args.model
    setup_logging(cfg, verbose=args.verbose)
    return cfg


def _mask(key: str) -> str:
    if not key:
        return "(none)"
    if len(key) <= 8:
        return "*" * len(key)
    return key[:4] + "…" + key[-4:]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_chat(args):
    """Start an interactive chat session."""
    from gptline.backends.openai_compat import OpenAICompatibleBackend
    from gptline.chat import ChatLoop

    cfg = _load(args)

    print("Welcome to gptline! Type 'exit', 'quit', or press Ctrl+D to end the chat.")
    print(f"Connected to model '{cfg.model}' at '{cfg.api_endpoint}'.")
    print(BANNER)

    with OpenAICompatibleBackend(
        name="default",
        url=cfg.api_endpoint,
        timeout=cfg.timeout,
        api_key=cfg.api_key,
    ) as backend:
        try:
            ChatLoop(cfg, backend).run()
        except KeyboardInterrupt:
            print("\nGoodbye!")


def cmd_setup(args):
    """Prompt for settings and overwrite the config file."""
    path = _config_path(args)
    cfg = prompt_for_config()
    save_config(cfg, path)
    print(f"Configuration saved to {path}")


def cmd_flash(args):
    """Show the effective configuration."""
    cfg = _load(args)
    log_cfg = cfg.logging or {}

    print(BANNER)
    print("  Configuration")
    print(f"  ├─ File:      {_config_path(args)}")
    print(f"  ├─ Endpoint:  {cfg.api_endpoint}")
    print(f"  ├─ API key:   {_mask(cfg.api_key)}")
    print(f"  ├─ Model:     {cfg.model}")
    print(f"  ├─ Username:  {cfg.username}")
    print(f"  ├─ Timeout:   {cfg.timeout:g}s")
    print(f"  ├─ System:    {cfg.system_prompt}")
    print(f"  └─ Logging:   {log_cfg.get('level', 'WARNING')}"
          + (f" → {log_cfg['file']}" if log_cfg.get("file") else ""))


def cmd_tone(args):
    """Print the banner."""
    print(BANNER)


# ---------------------------------------------------------------------------
# Parser with aliases
# ---------------------------------------------------------------------------

def _add_command(subparsers, names, help_text, func, setup_fn=None):
    """Register a command under multiple names."""
    p = subparsers.add_parser(names[0], help=help_text, aliases=names[1:])
    p.set_defaults(func=func)
    if setup_fn:
        setup_fn(p)
    return p


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gptline",
        description="gptline: stream chats with an OpenAI-compatible endpoint.",
        epilog="Run 'gptline <command> --help' for command-specific options.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", "-V", action="version",
        version=f"gptline {__version__}",
    )
    parser.add_argument("--config", "-c", default=None,
                        help="Path to config.yaml (default: ~/.config/gptline/config.yaml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging to stderr")
    parser.set_defaults(func=cmd_chat, endpoint=None, model=None)

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    def setup_chat(p):
        p.add_argument("--endpoint", "-e", default=None, help="Override API endpoint for this run")
        p.add_argument("--model", "-m", default=None, help="Override model for this run")

    _add_command(sub, ["chat", "talk"],
                 "Start an interactive chat (default)", cmd_chat, setup_chat)
    _add_command(sub, ["setup", "init"],
                 "Re-run first-time setup and rewrite the config", cmd_setup)
    _add_command(sub, ["flash", "info", "config"],
                 "Show the effective configuration", cmd_flash)
    _add_command(sub, ["tone", "banner"],
                 "Print the banner", cmd_tone)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        args.func(args)
    except ConfigError as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print()
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
