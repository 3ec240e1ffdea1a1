from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from lesson_arcade.config import load_settings
from lesson_arcade.errors import LessonGenerationError, MetadataLookupError, SessionError
from lesson_arcade.learning import Audience, Difficulty, LessonLevel, PlaySession, QuizQuestion
from lesson_arcade.media import embed_url
from lesson_arcade.storage import JsonFileKeyValueStore, LeaderboardEntry, LeaderboardStore
from lesson_arcade.system import ArcadeSystem, load_project, save_project

app = typer.Typer(help="Turn a video into a quiz-based lesson and play it in the terminal.")
console = Console()

load_dotenv(override=False)


def _load_system(config: Optional[Path], api_key: Optional[str]) -> ArcadeSystem:
    """Instantiate `ArcadeSystem` with optional config path and API key."""
    return ArcadeSystem.from_config(config, api_key=api_key)


def _print_leaderboard(entries: List[LeaderboardEntry]) -> None:
    if not entries:
        console.print("No scores recorded yet.")
        return
    table = Table(title="Leaderboard")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Score", justify="right")
    table.add_column("Accuracy", justify="right")
    for rank, entry in enumerate(entries, start=1):
        table.add_row(str(rank), entry.name, str(entry.score), f"{entry.accuracy}%")
    console.print(table)


def _ask_answer(question: QuizQuestion) -> str:
    if question.is_multiple_choice:
        for idx, option in enumerate(question.options):
            console.print(f"  {chr(65 + idx)}. {option}")
        while True:
            raw = typer.prompt("Your choice").strip()
            if len(raw) == 1 and raw.isalpha():
                idx = ord(raw.upper()) - 65
                if 0 <= idx < len(question.options):
                    return question.options[idx]
            if raw in question.options:
                return raw
            console.print("[yellow]Pick one of the listed letters.[/yellow]")
    while True:
        raw = typer.prompt("Your answer").strip()
        if raw:
            return raw


def _ask_player_name() -> str:
    while True:
        name = typer.prompt("You made the leaderboard! Your name", default="Player").strip()
        if name:
            return name
        console.print("[yellow]Please enter a name.[/yellow]")


def _play_level(system: ArcadeSystem, session: PlaySession, level: LessonLevel, number: int) -> None:
    heading = f"Level {number}: {level.title}"
    if level.time_range_start:
        heading += f" (from {level.time_range_start})"
    console.rule(f"[bold]{heading}[/bold]")
    if level.description:
        console.print(level.description)

    total = len(level.questions)
    for position, question in enumerate(level.questions, start=1):
        if question.id in session.answers:
            continue
        kind = "Multiple Choice" if question.is_multiple_choice else "Short Answer"
        console.print(f"\n[bold]Question {position} / {total}[/bold]  [dim]{kind}[/dim]  streak: {session.streak}")
        console.print(question.question)
        answer = _ask_answer(question)
        with console.status("Evaluating..."):
            result = system.submit_answer(session, question.id, answer)
        style = {"correct": "green", "partially_correct": "yellow"}.get(result.classification.value, "red")
        earned = session.answers[question.id].points
        console.print(f"[{style}]{result.classification.value.replace('_', ' ')}[/{style}] (+{earned})")
        if result.feedback:
            console.print(result.feedback)
        if question.explanation and not result.is_correct:
            console.print(f"[dim]{question.explanation}[/dim]")

    summary = session.complete_level(level.id)
    console.print(
        f"\nYou answered {summary.correct} out of {summary.total} questions correctly "
        f"({summary.accuracy}%). {summary.message}"
    )


@app.command()
def create(
    video_url: str = typer.Argument(..., help="YouTube video URL."),
    output: Path = typer.Option(Path("lesson.json"), help="Where to write the lesson plan."),
    title: Optional[str] = typer.Option(None, help="Video title; looked up via oEmbed when omitted."),
    description: str = typer.Option("", help="Video description or summary."),
    audience: Audience = typer.Option(Audience.INTERMEDIATE),
    difficulty: Difficulty = typer.Option(Difficulty.MEDIUM),
    config: Optional[Path] = typer.Option(None, help="Path to configuration YAML."),
    api_key: Optional[str] = typer.Option(None, help="Model API key."),
):
    """Generate a lesson plan for a video and save it as JSON."""
    system = _load_system(config, api_key)
    if embed_url(video_url) is None:
        console.print("[yellow]Warning: not a recognised YouTube URL.[/yellow]")
    if not title:
        try:
            title = system.fetch_metadata(video_url).title
        except MetadataLookupError as exc:
            raise typer.BadParameter(f"{exc} Pass --title explicitly.") from exc

    try:
        with console.status("Generating lesson..."):
            project = system.create_lesson(video_url, title, description, audience, difficulty)
    except LessonGenerationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    save_project(project, output)
    console.print(
        f"Created lesson [bold]{project.video_title}[/bold] with {len(project.levels)} levels "
        f"and {project.total_questions} questions -> {output}"
    )


@app.command()
def summarize(
    video_url: str = typer.Argument(..., help="YouTube video URL."),
    audience: Audience = typer.Option(Audience.INTERMEDIATE),
    difficulty: Difficulty = typer.Option(Difficulty.MEDIUM),
    config: Optional[Path] = typer.Option(None),
    api_key: Optional[str] = typer.Option(None),
):
    """Look up a video's title/author and print a model-written summary."""
    system = _load_system(config, api_key)
    try:
        metadata = system.fetch_metadata(video_url)
    except MetadataLookupError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    try:
        summary = system.summarize(metadata.title, metadata.author_name, audience, difficulty)
    except LessonGenerationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    console.print(f"[bold]{metadata.title}[/bold] by {metadata.author_name or 'unknown'}")
    console.print(summary)


@app.command()
def play(
    lesson: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    config: Optional[Path] = typer.Option(None),
    api_key: Optional[str] = typer.Option(None),
):
    """Play a saved lesson level by level, then record the result on the leaderboard."""
    system = _load_system(config, api_key)
    project = load_project(lesson)
    session = system.start_session(project)

    while True:
        for number, level in enumerate(project.levels, start=1):
            try:
                session.select_level(level.id)
            except SessionError as exc:
                console.print(f"[red]{exc}[/red]")
                break
            _play_level(system, session, level, number)

        console.rule("[bold]Course complete[/bold]")
        console.print(
            f"Score: {session.score}  Accuracy: {session.accuracy}%  Best streak: {session.best_streak}"
        )
        if system.leaderboard.qualifies(project.id, session.score):
            name = _ask_player_name()
            entries = system.record_result(session, name)
        else:
            entries = system.read_leaderboard(project.id)
        _print_leaderboard(entries)

        if not typer.confirm("Play again?", default=False):
            break
        session.reset()


@app.command()
def leaderboard(
    lesson: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    config: Optional[Path] = typer.Option(None),
):
    """Show the top five attempts for a saved lesson (no model access needed)."""
    settings = load_settings(config)
    board = LeaderboardStore(
        JsonFileKeyValueStore(settings.leaderboard.path),
        prefix=settings.leaderboard.key_prefix,
        max_entries=settings.leaderboard.max_entries,
        max_name_length=settings.leaderboard.max_name_length,
    )
    project = load_project(lesson)
    _print_leaderboard(board.read(project.id))


if __name__ == "__main__":
    app()
