"""
Leap Academy: terminal front end.

A Rich terminal interface for studying AI-generated modules.

Commands:
- academy modules                    - List modules, newest first
- academy create TOPIC               - Create a module and generate its content
- academy add-resource MODULE TEXT   - Add a learner resource
- academy study MODULE               - Walk through assignment, quiz, final test, results
- academy reset MODULE               - Start a needs-revisit module over
- academy show MODULE                - Show a module's progress (and certificate)
"""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from loguru import logger

from config import get_settings
from academy.auth.identity import IdentityProvider
from academy.core.errors import AcademyError, PersistenceError, TransitionError
from academy.core.log_config import configure_logging
from academy.core.models import Module, ModuleStatus
from academy.db.database import create_store_engine
from academy.generation.gemini_client import GeminiClient
from academy.study.phases import Phase
from academy.study.registry import ModuleRegistry
from academy.study.session import ModuleSession
from academy.sync.store import DocumentStore


# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="academy",
    help="Leap Academy: AI-generated study modules",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Styling
# =============================================================================

STATUS_STYLES = {
    ModuleStatus.STARTED: "cyan",
    ModuleStatus.RESOURCES_ADDED: "blue",
    ModuleStatus.ASSIGNMENT_DONE: "magenta",
    ModuleStatus.COMPLETED: "bold green",
    ModuleStatus.NEEDS_REVISIT: "bold yellow",
}

NOTICE_STYLES = {"error": "bold red", "warning": "bold yellow", "info": "bold cyan"}


@app.callback()
def root(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Log at the configured LOG_LEVEL instead of warnings only",
    ),
) -> None:
    """Leap Academy: AI-generated study modules."""
    if verbose:
        configure_logging()


def style_status(status: ModuleStatus) -> str:
    color = STATUS_STYLES.get(status, "white")
    return f"[{color}]{status.value}[/{color}]"


# =============================================================================
# Wiring
# =============================================================================

@asynccontextmanager
async def open_registry() -> AsyncIterator[ModuleRegistry]:
    """Sign in and yield an active registry for the configured store."""
    settings = get_settings()
    identity = IdentityProvider(settings.identity_file)
    identity.sign_in(settings.auth_token)

    engine = create_store_engine(settings.database_url)
    try:
        store = DocumentStore(engine)
        async with ModuleRegistry(store, identity, GeminiClient(settings=settings), settings) as registry:
            yield registry
    finally:
        engine.dispose()


def run(coro) -> None:
    """Run a command coroutine, turning domain errors into a clean exit."""
    try:
        asyncio.run(coro)
    except (AcademyError, ValueError) as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(1)


# =============================================================================
# Display Helpers
# =============================================================================

def display_notices(session: ModuleSession) -> None:
    for notice in session.notices:
        style = NOTICE_STYLES.get(notice.level, "white")
        console.print(f"[{style}]{notice.message}[/{style}]")
    session.dismiss_notices()


def display_modules(modules: list[Module]) -> None:
    if not modules:
        console.print("[dim]No modules yet. Create one with: academy create TOPIC[/dim]")
        return

    table = Table(title="Your Modules")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Status")
    table.add_column("Quizzes", justify="right")
    table.add_column("Final", justify="right")
    table.add_column("Created")

    for module in modules:
        table.add_row(
            module.id,
            module.name,
            style_status(module.status),
            str(len(module.quizzes)),
            f"{module.final_test_score:.0f}%" if module.status.is_finished else "-",
            module.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


def display_module(module: Module) -> None:
    lines = [
        f"Status: {style_status(module.status)}",
        f"Created: {module.created_at:%Y-%m-%d %H:%M}   Updated: {module.last_updated:%Y-%m-%d %H:%M}",
    ]
    if module.assignment_content:
        content = module.assignment_content
        lines.append(f"Assignment: {content.title} ({content.section_count} sections, {content.total_marks:g} marks)")
        lines.append(f"Assignment completed: {'yes' if module.assignments.completed else 'no'}")
    if module.quizzes:
        scores = ", ".join(f"{q.score:.0f}%" for q in module.quizzes)
        lines.append(f"Quiz attempts: {scores}")
    if module.status.is_finished:
        lines.append(f"Final test: {module.final_test_score:.2f}%")
        lines.append(f"Certificate: {'issued' if module.certificate_issued else 'not issued'}")

    console.print(Panel("\n".join(lines), title=module.name, title_align="left", border_style="cyan"))
    display_resources(module)


def display_resources(module: Module) -> None:
    if module.teacher_picks:
        console.print("\n[bold]Teacher's Picks[/bold]")
        for pick in module.teacher_picks:
            url = f" [dim]{pick.url}[/dim]" if pick.url and pick.url != "#" else ""
            console.print(f"  - {pick.title}{url}")
    if module.resources:
        console.print("\n[bold]Your Resources[/bold]")
        for resource in module.resources:
            console.print(f"  - {resource}")


def display_section(session: ModuleSession) -> None:
    section = session.current_section
    content = session.module.assignment_content
    body = f"[bold]{section.sub_scenario.title}[/bold]\n{section.sub_scenario.description}\n"
    for task in section.tasks:
        kind = f"{task.type} ({task.language})" if task.language else task.type
        body += f"\n[cyan]{task.task_id}[/cyan] ({kind}, {task.marks:g} marks) {task.task_description}"

    console.print(Panel(
        body,
        title=f"{content.title}  |  Section {session.section_index + 1}/{session.section_count}: "
              f"{section.section_title} ({section.marks:g} marks)",
        title_align="left",
        border_style="cyan",
        padding=(1, 2),
    ))


# =============================================================================
# Interactive study loop
# =============================================================================

async def study_assignment(session: ModuleSession) -> bool:
    if session.current_section is None:
        console.print("[yellow]This module has no assignment yet.[/yellow]")
        if Confirm.ask("Generate module content now?", default=True):
            await session.ensure_content()
            return True
        return False

    if session.section_index == 0:
        scenario = session.module.assignment_content.scenario
        console.print(Panel(scenario.description, title=scenario.title, border_style="blue"))
    display_section(session)

    section = session.current_section
    for task in section.tasks:
        current = session.responses.get(section.section_id, {}).get(task.task_id, "")
        answer = Prompt.ask(f"Response for {task.task_id}", default=current, show_default=False)
        session.set_response(section.section_id, task.task_id, answer)

    next_label = "submit" if session.is_last_section else "next"
    action = Prompt.ask(
        f"(n) {next_label}  (p) previous  (r) resources  (s) submit  (q) quit",
        choices=["n", "p", "r", "s", "q"],
        default="n",
    )
    if action == "n":
        await session.next_section()
    elif action == "p":
        session.previous_section()
    elif action == "r":
        session.view_resources()
    elif action == "s":
        await session.submit_assignment()
    else:
        return False
    return True


async def study_resources(session: ModuleSession) -> bool:
    display_resources(session.module)
    action = Prompt.ask("(a) add resource  (b) back to assignment  (q) quit", choices=["a", "b", "q"], default="b")
    if action == "a":
        await session.add_resource(Prompt.ask("Resource (title, url or note)"))
    elif action == "b":
        session.start_assignment()
    else:
        return False
    return True


def ask_questions(session: ModuleSession) -> None:
    metrics = session.metrics
    console.print(Panel(
        f"Difficulty: {metrics.difficulty}\n"
        f"Focus: {metrics.practicality_theoreticity}\n"
        f"Predictability: {metrics.predictability}\n"
        f"Alignment: {metrics.alignment}\n"
        f"Time: {metrics.learning_time}\n"
        f"Proficiency: {metrics.proficiency_required}",
        title="About this test",
        border_style="dim",
    ))
    for index, question in enumerate(session.questions):
        options = "\n".join(f"  {key}. {text}" for key, text in question.options.items())
        console.print(Panel(f"{question.question}\n\n{options}", title=f"Question {index + 1}", border_style="cyan"))
        answer = Prompt.ask("Your answer (A/B/C/D)", choices=["A", "B", "C", "D", "a", "b", "c", "d"]).upper()
        session.select_answer(index, answer)


async def study_quiz(session: ModuleSession) -> bool:
    if not session.questions:
        action = Prompt.ask(
            "(g) generate quiz  (f) final test  (a) assignment  (q) quit",
            choices=["g", "f", "a", "q"],
            default="g",
        )
        if action == "g":
            await session.generate_assessment()
        elif action == "f":
            try:
                session.proceed_to_final_test()
            except TransitionError as e:
                console.print(f"[yellow]{e}[/yellow]")
        elif action == "a":
            session.return_to_assignment()
        else:
            return False
        return True

    ask_questions(session)
    result = await session.submit_quiz()
    style = "bold green" if result.passed else "bold red"
    console.print(f"[{style}]Quiz score: {result.score:.0f}%[/{style}]")
    if not result.passed:
        console.print(f"[dim]Score at least {session.pass_threshold:g}% to unlock the final test.[/dim]")
    return True


async def study_final_test(session: ModuleSession) -> bool:
    if not session.questions:
        action = Prompt.ask("(g) generate final test  (b) back to quiz  (q) quit", choices=["g", "b", "q"], default="g")
        if action == "g":
            await session.generate_assessment()
        elif action == "b":
            session.return_to_quiz()
        else:
            return False
        return True

    ask_questions(session)
    await session.submit_final_test()
    return True


async def study_results(session: ModuleSession) -> bool:
    details = session.score_details
    style = "green" if details.certificate_issued else "yellow"
    console.print(Panel(
        f"Final score: {details.score:.2f}%\n\n{details.comment}",
        title="Results",
        border_style=style,
    ))

    if details.certificate_issued:
        name = Prompt.ask("Your name for the certificate (blank to skip)", default="", show_default=False)
        if name.strip():
            console.print(Panel(session.certificate_text(name), border_style="green"))
        return False

    if Confirm.ask("Reset this module and try again?", default=False):
        await session.reset_for_retry()
        return True
    return False


STEPS = {
    Phase.ASSIGNMENT: study_assignment,
    Phase.RESOURCES: study_resources,
    Phase.QUIZ: study_quiz,
    Phase.FINAL_TEST: study_final_test,
    Phase.RESULTS: study_results,
}


async def study_loop(session: ModuleSession) -> None:
    while True:
        display_notices(session)
        if session.phase == Phase.MODULE_SELECT:
            break
        step = STEPS[session.phase]
        if not await step(session):
            session.back_to_modules()
            break


# =============================================================================
# Commands
# =============================================================================

@app.command()
def modules() -> None:
    """List your modules, newest first."""
    async def _modules() -> None:
        async with open_registry() as registry:
            display_modules(await registry.refresh())

    run(_modules())


@app.command()
def create(topic: str = typer.Argument(..., help="Topic to study")) -> None:
    """Create a module and generate its resources and assignment."""
    async def _create() -> None:
        async with open_registry() as registry:
            with console.status(f"Generating content for {topic!r}..."):
                session = await registry.create_module(topic)
            display_notices(session)
            console.print(f"[green]Created module {session.module.id}[/green]")
            display_module(session.module)

    run(_create())


@app.command("add-resource")
def add_resource(
    module_id: str = typer.Argument(..., help="Module ID"),
    text: str = typer.Argument(..., help="Resource title, url or note"),
) -> None:
    """Add a resource of your own to a module."""
    async def _add() -> None:
        async with open_registry() as registry:
            session = await registry.select_module(module_id)
            await session.add_resource(text)
            display_notices(session)
            console.print(f"[green]Added resource to {session.module.name}[/green]")

    run(_add())


@app.command()
def study(module_id: str = typer.Argument(..., help="Module ID")) -> None:
    """Study a module: assignment, quiz, final test and results."""
    async def _study() -> None:
        async with open_registry() as registry:
            session = await registry.select_module(module_id)
            console.print(f"[bold cyan]{session.module.name}[/bold cyan] [dim]({session.phase.value})[/dim]")
            await study_loop(session)

    run(_study())


@app.command()
def reset(
    module_id: str = typer.Argument(..., help="Module ID"),
    confirm: bool = typer.Option(
        False,
        "--yes", "-y",
        help="Skip confirmation",
    ),
) -> None:
    """Start a module that needs revisiting over (keeps resources and content)."""
    if not confirm and not Confirm.ask(f"Reset progress for {module_id}?", default=False):
        raise typer.Exit(0)

    async def _reset() -> None:
        async with open_registry() as registry:
            session = await registry.select_module(module_id)
            await session.reset_for_retry()
            display_notices(session)
            console.print(f"[green]Module {session.module.name} reset. Good luck![/green]")

    run(_reset())


@app.command()
def show(
    module_id: str = typer.Argument(..., help="Module ID"),
    certificate: Optional[str] = typer.Option(
        None,
        "--certificate", "-c",
        help="Print the certificate for this name",
    ),
) -> None:
    """Show a module's progress."""
    async def _show() -> None:
        async with open_registry() as registry:
            module = await registry.find(module_id)
            if module is None:
                raise PersistenceError(f"Module not found: {module_id}")
            session = registry.open_session(module)
            display_module(module)
            if certificate:
                console.print(Panel(session.certificate_text(certificate), border_style="green"))

    run(_show())


# =============================================================================
# Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point."""
    configure_logging(level="WARNING")
    logger.debug("Starting academy CLI")
    app()


if __name__ == "__main__":
    main()
