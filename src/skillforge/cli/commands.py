"""CLI commands for SkillForge.

Commands:
- init-db: Create the database schema
- serve: Run the Web API with uvicorn
- ask: Ask the platform assistant a question
- quiz: Generate a quiz from a text file and take it interactively
- plan: Find or create a learning plan for a user and show it
- users: List user profiles
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from skillforge.ai.flows import ask_global_chatbot, generate_quiz, suggest_quiz_feedback
from skillforge.config.app_config import load_app_config
from skillforge.core import planner
from skillforge.core.errors import SkillForgeError
from skillforge.db.database import init_db
from skillforge.db.users_repository import ensure_profile, list_users, profile_completeness
from skillforge.llm.client import LLMClient, LLMError

app = typer.Typer(
    name="skillforge",
    help="SkillForge: content sharing and AI-assisted learning platform.",
    no_args_is_help=True,
)

console = Console()


def _make_client(provider: str | None, model: str | None) -> LLMClient:
    try:
        return LLMClient(provider=provider, model=model)
    except LLMError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)


def _open_db(db: str | None) -> None:
    init_db(Path(db) if db else load_app_config().db_path)


def _truncate(text: str, max_len: int = 120) -> str:
    """Truncate text with ellipsis if too long."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


@app.command(name="init-db")
def init_database(
    db: str | None = typer.Option(None, "--db", help="Database path (default from config)"),
) -> None:
    """Create the database and its tables."""
    path = Path(db) if db else load_app_config().db_path
    init_db(path)
    console.print(f"[green]✓ Database ready[/green] [dim]{path}[/dim]")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the Web API."""
    import uvicorn

    console.print(f"[bold]SkillForge API[/bold] on http://{host}:{port}")
    uvicorn.run("skillforge.web.api:create_app", host=host, port=port, reload=reload, factory=True)


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question for the assistant"),
    provider: str | None = typer.Option(None, "--provider", help="LLM provider"),
    model: str | None = typer.Option(None, "--model", "-m", help="Model name"),
) -> None:
    """Ask the platform assistant a question."""
    llm = _make_client(provider, model)
    try:
        result = ask_global_chatbot(question, llm)
    except (LLMError, SkillForgeError) as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    console.print(result.answer)


@app.command()
def quiz(
    file: str = typer.Argument(..., help="Text or Markdown file to quiz on"),
    questions: int = typer.Option(5, "--questions", "-n", help="Number of questions (1-10)"),
    provider: str | None = typer.Option(None, "--provider", help="LLM provider"),
    model: str | None = typer.Option(None, "--model", "-m", help="Model name"),
) -> None:
    """Generate a quiz from a file and take it in the terminal."""
    path = Path(file).expanduser()
    if not path.exists():
        console.print(f"[red]✗ File not found: {path}[/red]")
        raise typer.Exit(code=1)
    content_text = path.read_text(encoding="utf-8", errors="replace")

    llm = _make_client(provider, model)
    try:
        result = generate_quiz(content_text, questions, llm)
    except SkillForgeError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    if not result.questions:
        console.print("[yellow]⚠ The AI could not generate questions for this content[/yellow]")
        raise typer.Exit(code=1)

    results = []
    for number, question in enumerate(result.questions, start=1):
        console.print(f"\n[bold]Question {number}/{len(result.questions)}[/bold]")
        console.print(f"  {question.question_text}")
        for i, option in enumerate(question.options):
            console.print(f"    [dim]{i})[/dim] {option}")
        while True:
            raw = typer.prompt("Your answer (0-3)")
            try:
                choice = int(raw.strip())
                if 0 <= choice <= 3:
                    break
            except ValueError:
                pass
            console.print("[yellow]⚠ Enter a number between 0 and 3[/yellow]")
        correct = choice == question.correct_answer_index
        console.print("[green]✓ Correct[/green]" if correct else "[red]✗ Incorrect[/red]")
        results.append({**question.model_dump(), "user_answer_index": choice, "is_correct": correct})

    score = sum(1 for r in results if r["is_correct"])
    console.print(f"\n[bold]Score:[/bold] {score}/{len(results)}")
    if score < len(results):
        try:
            feedback = suggest_quiz_feedback(content_text, results, llm)
            console.print(f"\n{feedback.feedback_text}")
        except LLMError as e:
            console.print(f"[yellow]⚠ Could not get feedback: {e}[/yellow]")


@app.command()
def plan(
    skill: str = typer.Argument(..., help="Skill to learn"),
    user: str = typer.Option(..., "--user", "-u", help="User UID"),
    db: str | None = typer.Option(None, "--db", help="Database path (default from config)"),
    provider: str | None = typer.Option(None, "--provider", help="LLM provider"),
    model: str | None = typer.Option(None, "--model", "-m", help="Model name"),
) -> None:
    """Find or create a learning plan and print its milestones."""
    _open_db(db)
    ensure_profile(user)
    llm = _make_client(provider, model)

    try:
        record, created = planner.find_or_create_plan(user, skill, llm)
    except (LLMError, SkillForgeError) as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    label = "[green]New plan[/green]" if created else "[cyan]Resuming plan[/cyan]"
    console.print(f"{label} [bold]{record.plan_title}[/bold] [dim]({record.plan_id})[/dim]")
    if record.overview:
        console.print(f"  {record.overview}")
    console.print(f"  [dim]progress:[/dim] {planner.plan_progress(record)}%\n")

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Milestone")
    table.add_column("Duration")
    table.add_column("Search")
    table.add_column("Quiz", justify="right")
    table.add_column("Done")
    for i, milestone in enumerate(record.milestones):
        table.add_row(
            str(i),
            milestone["milestone_title"],
            milestone["estimated_duration"],
            _truncate(", ".join(milestone["suggested_search_keywords"]), 40),
            str(len(milestone.get("quiz") or [])),
            "✓" if milestone.get("completed") else "",
        )
    console.print(table)


@app.command(name="users")
def list_user_profiles(
    search: str | None = typer.Option(None, "--search", "-s", help="Filter by name or email"),
    db: str | None = typer.Option(None, "--db", help="Database path (default from config)"),
) -> None:
    """List user profiles."""
    _open_db(db)
    profiles = list_users(search_term=search)

    if not profiles:
        console.print("[yellow]No users found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("UID")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Followers", justify="right")
    table.add_column("Following", justify="right")
    table.add_column("Profile", justify="right")
    for p in profiles:
        table.add_row(
            p.uid,
            p.full_name,
            p.email or "",
            str(p.followers_count),
            str(p.following_count),
            f"{profile_completeness(p)}%",
        )
    console.print(table)


if __name__ == "__main__":
    app()
