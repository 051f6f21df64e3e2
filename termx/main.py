"""Command-line entry point for termx."""

import asyncio

import typer

from termx.agent import Agent, AgentOptions
from termx.config import Config, set_config
from termx.exceptions import LLMError, TermxError
from termx.llm import LLMProvider, Message, create_provider
from termx.logging import configure_logging, get_logger
from termx.prompts import SYSTEM_PROMPT
from termx.session import Session
from termx.tools import create_default_registry
from termx.ui import TerminalUI

log = get_logger(__name__)

app = typer.Typer(
    help="termx - a tool-using coding agent for the terminal",
    no_args_is_help=True,
    add_completion=False,
)

QUIT_COMMANDS = {"quit", "exit"}


def _load_config(
    config_path: str,
    model: str,
    yes: bool,
    max_steps: int | None,
    verbose: bool,
) -> Config:
    """Load config from disk and apply command-line overrides."""
    cfg = Config.from_yaml(config_path or None)
    if model:
        cfg.model.model = model
    if yes:
        cfg.agent.auto_approve = True
    if max_steps is not None:
        cfg.agent.max_steps = max_steps
    set_config(cfg)
    configure_logging("DEBUG" if verbose else None)
    return cfg


def _create_providers(cfg: Config) -> tuple[LLMProvider, LLMProvider]:
    main = create_provider(
        base_url=cfg.model.base_url,
        api_key=cfg.model.api_key,
        model=cfg.model.model,
        timeout=cfg.model.request_timeout,
    )
    orackle = create_provider(
        base_url=cfg.model.base_url,
        api_key=cfg.model.api_key,
        model=cfg.model.orackle_model,
        timeout=cfg.model.request_timeout,
    )
    return main, orackle


def _new_session(cfg: Config, title: str) -> Session:
    session = Session(title=title, model=cfg.model.model)
    session.add_message(Message(role="system", content=SYSTEM_PROMPT))
    return session


async def _run_prompt(agent: Agent, ui: TerminalUI, session: Session, prompt: str) -> bool:
    """Run one user prompt. Returns False when the run failed."""
    try:
        result = await agent.run(prompt, session)
    except LLMError as e:
        log.error("Agent run failed", error=str(e), session_id=session.id)
        ui.print_error(str(e))
        return False
    if result.final_answer is not None:
        ui.print_answer(result.final_answer)
    else:
        ui.end_stream()
    return True


async def _chat(cfg: Config) -> None:
    ui = TerminalUI(streaming=cfg.ui.streaming, colors=cfg.ui.colors)
    provider, orackle = _create_providers(cfg)
    agent = Agent(
        provider=provider,
        tools=create_default_registry(orackle_provider=orackle),
        options=AgentOptions.from_config(cfg),
        approver=ui,
        events=ui,
    )
    session = _new_session(cfg, "Coding Session")
    ui.print_welcome(cfg.model.model)

    try:
        while True:
            try:
                user_input = (await asyncio.to_thread(ui.prompt)).strip()
            except (EOFError, KeyboardInterrupt):
                log.info("Input closed")
                break

            command = user_input.lower()
            if not command:
                continue
            if command in QUIT_COMMANDS:
                break
            if command == "help":
                ui.print_help()
                continue
            if command == "clear":
                ui.clear_screen()
                continue
            if command == "status":
                ui.print_status(session)
                continue

            ok = await _run_prompt(agent, ui, session, user_input)
            if not ok:
                ui.console.print("Something went wrong. Please try again or type 'help' for available commands.")
    finally:
        ui.print_summary(session)
        await provider.close()
        await orackle.close()


async def _ask(cfg: Config, prompt: str) -> bool:
    ui = TerminalUI(streaming=cfg.ui.streaming, colors=cfg.ui.colors)
    provider, orackle = _create_providers(cfg)
    agent = Agent(
        provider=provider,
        tools=create_default_registry(orackle_provider=orackle),
        options=AgentOptions.from_config(cfg),
        approver=ui,
        events=ui,
    )
    try:
        return await _run_prompt(agent, ui, _new_session(cfg, "One-shot"), prompt)
    finally:
        await provider.close()
        await orackle.close()


@app.command()
def chat(
    config: str = typer.Option("", "-c", "--config", help="Path to config file"),
    model: str = typer.Option("", "-m", "--model", help="Override model"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Approve every tool call without asking"),
    max_steps: int | None = typer.Option(None, "--max-steps", min=1, help="Step limit per prompt"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
) -> None:
    """Start an interactive session."""
    try:
        cfg = _load_config(config, model, yes, max_steps, verbose)
        asyncio.run(_chat(cfg))
    except TermxError as e:
        TerminalUI().print_error(str(e))
        raise typer.Exit(code=1)


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Task or question for the agent"),
    config: str = typer.Option("", "-c", "--config", help="Path to config file"),
    model: str = typer.Option("", "-m", "--model", help="Override model"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Approve every tool call without asking"),
    max_steps: int | None = typer.Option(None, "--max-steps", min=1, help="Step limit"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
) -> None:
    """Run a single prompt and exit."""
    try:
        cfg = _load_config(config, model, yes, max_steps, verbose)
        ok = asyncio.run(_ask(cfg, prompt))
    except TermxError as e:
        TerminalUI().print_error(str(e))
        raise typer.Exit(code=1)
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Show version information."""
    from termx import __version__

    typer.echo(f"termx v{__version__}")


if __name__ == "__main__":
    app()
