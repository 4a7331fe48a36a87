"""threadcheck rich error messages - actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from threadcheck.cli.errors import err_no_api_key
    console.print(err_no_api_key("openai"))
    raise typer.Exit(2)
"""

from __future__ import annotations

from rich.markup import escape

from threadcheck.rag.embedder import provider_of

_ENV_MAP = {
    "openai": "OPENAI_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
}


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_var = _ENV_MAP.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-...\n"
        "  Or run offline:  threadcheck validate --offline ..."
    )


def err_file_not_found(path: str, what: str) -> str:
    """Input file does not exist."""
    return (
        f"[red]Error:[/] {what} file not found: '{escape(path)}'\n"
        "  Check the path and try again."
    )


def err_bad_thread_file(path: str, detail: str) -> str:
    """Thread file could not be parsed into posts."""
    return (
        f"[red]Error:[/] Cannot read thread from '{escape(path)}': {escape(detail)}\n"
        "  Expected YAML or JSON with a 'posts:' list, each post having\n"
        "  'id', 'author' and 'text' (optional: 'timestamp', 'reply_to')."
    )


def err_config(detail: str) -> str:
    """Config file is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration: {escape(detail)}\n"
        "  Fix threadcheck.yaml (or ~/.threadcheck/config.yaml) and re-run."
    )


def err_embedding_failed(model: str, detail: str) -> str:
    """Embedding provider call failed."""
    return (
        f"[red]Error:[/] Embedding with '{escape(model)}' failed: {escape(detail)}\n"
        f"  Check the {provider_of(model)} provider status and your network, or run with --offline."
    )


def err_validation_cancelled(detail: str) -> str:
    """Validation was interrupted or timed out."""
    return (
        f"[red]Error:[/] Validation did not complete: {escape(detail)}\n"
        "  Re-run, or raise --timeout if the provider is slow."
    )

