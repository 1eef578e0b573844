"""
Typer CLI for the quizlog trainer.

Commands:
    quizlog banks               - List subjects, topics and question counts
    quizlog sample              - Print a random draw from a bank
    quizlog quiz                - Take an exam in the terminal and save the result
    quizlog stats               - Score statistics across all exams
    quizlog trend               - Daily mean scores over a trailing window
    quizlog history             - Recent exam outcomes
    quizlog errors              - Error book with filters
    quizlog master              - Toggle mastery of an error record or question
    quizlog clear-mastered      - Remove mastered records from the error book
    quizlog practice            - Re-answer unmastered wrong questions
    quizlog export results      - Write exam outcomes to a CSV report
    quizlog serve               - Run the persistence API

Usage:
    quizlog --help
    quizlog quiz 英语 语音 --count 10
    quizlog errors --subject 英语 --mastery unmastered --period week
    quizlog trend --days 7
"""

from __future__ import annotations

import os
import sys

# Fix Windows encoding issues for CJK output
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    if hasattr(sys.stderr, "reconfigure"):
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import random
from datetime import datetime
from pathlib import Path

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from config import Settings, get_settings
from quizlog.analytics import (
    error_summary,
    filter_error_records,
    outcomes_to_csv,
    report_filename,
    score_trend,
    statistics,
)
from quizlog.bank import OPTION_KEYS, Question, QuestionBankLoader, to_rich_markup
from quizlog.errors import BankLoadError, StorageError
from quizlog.records import (
    FileBackend,
    HttpFileBackend,
    LocalFileBackend,
    MasteryTracker,
    OutcomeStore,
    grade_exam,
    round_half_up,
)

app = typer.Typer(
    help="quizlog: offline quiz trainer with flat-file score and error history",
    no_args_is_help=True,
)

console = Console()

LOG_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug detail to stderr"),
):
    """
    Offline quiz trainer.

    Question banks live in data/{subject}/{topic}.txt; exam outcomes and wrong
    answers are appended to log/ and error/ and re-read on every run.
    """
    settings = get_settings()
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else settings.log_level, format=LOG_FORMAT)
    if settings.log_file:
        logger.add(
            settings.storage_root / settings.log_file,
            level="DEBUG",
            rotation="1 MB",
            retention=5,
            encoding="utf-8",
        )


# ========================================
# Context Builder (Dependency Injection)
# ========================================


class CLIContext:
    """
    Dependency injection container for CLI commands.

    Services are built on first use, so commands that only read banks never
    touch the outcome trees.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._backend: FileBackend | None = None
        self._store: OutcomeStore | None = None
        self._tracker: MasteryTracker | None = None
        self._loader: QuestionBankLoader | None = None

    @property
    def backend(self) -> FileBackend:
        if self._backend is None:
            if self.settings.storage_backend == "http":
                self._backend = HttpFileBackend(self.settings.api_base_url, timeout=self.settings.http_timeout)
            else:
                self._backend = LocalFileBackend(self.settings.storage_root)
        return self._backend

    @property
    def store(self) -> OutcomeStore:
        if self._store is None:
            self._store = OutcomeStore(
                self.backend,
                results_root=self.settings.results_dir,
                errors_root=self.settings.errors_dir,
                fallback_files=self.settings.fallback_files,
            )
        return self._store

    @property
    def tracker(self) -> MasteryTracker:
        """Mastery tracker over a freshly scanned store."""
        if self._tracker is None:
            self._tracker = MasteryTracker(self.store, self.backend, self.settings.mastery_path)
            self._tracker.refresh()
        return self._tracker

    @property
    def loader(self) -> QuestionBankLoader:
        if self._loader is None:
            self._loader = QuestionBankLoader(self.settings.data_path)
            self._loader.scan()
        return self._loader


def _build_context() -> CLIContext:
    """Build CLI context with dependency injection."""
    return CLIContext()


def _fail(message: str) -> None:
    rprint(f"[red]✗[/red] {message}")
    raise typer.Exit(code=1)


def _render(text: str) -> str:
    return to_rich_markup(escape(text))


def _draw(ctx: CLIContext, subject: str, topic: str, count: int, seed: int | None) -> list[Question]:
    loader = ctx.loader
    if subject not in loader.subjects():
        _fail(f"Unknown subject: {subject} (available: {', '.join(loader.subjects()) or 'none'})")
    if topic not in loader.topics(subject):
        _fail(f"Unknown topic: {subject}/{topic} (available: {', '.join(loader.topics(subject)) or 'none'})")

    rng = random.Random(seed) if seed is not None else None
    try:
        return loader.random_questions(subject, topic, count, rng)
    except BankLoadError as e:
        _fail(str(e))
    return []


def _print_question(number: int, total: int, text: str, options: dict[str, str]) -> None:
    rprint(f"\n[bold cyan]{number}/{total}[/bold cyan] {_render(text)}")
    for key in OPTION_KEYS:
        if key in options:
            rprint(f"   [bold]{key}.[/bold] {_render(options[key])}")


def _ask_answer() -> str | None:
    while True:
        raw = Prompt.ask("[cyan]Answer (A-D, Enter to skip)[/cyan]", default="", show_default=False)
        answer = raw.strip().upper()
        if not answer:
            return None
        if answer in OPTION_KEYS:
            return answer
        rprint("[yellow]Please answer A, B, C or D[/yellow]")


# ========================================
# BANK COMMANDS
# ========================================


@app.command("banks")
def banks() -> None:
    """List subjects and topics found under the data directory."""
    ctx = _build_context()
    loader = ctx.loader

    table = Table(title="Question Banks", show_header=True)
    table.add_column("Subject", style="cyan")
    table.add_column("Topic")
    table.add_column("Questions", justify="right", style="green")

    for info in loader.subject_info():
        for topic in info["topics"]:
            failure = loader.failures.get(f"{info['name']}/{topic}")
            count = "[red]failed[/red]" if failure else str(len(loader.questions(info["name"], topic)))
            table.add_row(info["name"], topic, count)
        table.add_section()

    console.print(table)

    status = loader.loading_status()
    rprint(
        f"\n  Subjects: {status['subjects_count']}  Topics: {status['topics_count']}  "
        f"Questions: {status['questions_count']}"
    )
    if status["failed_banks"] or status["rejected_lines"]:
        rprint(
            f"  [yellow]⚠[/yellow] {status['failed_banks']} failed banks, "
            f"{status['rejected_lines']} rejected lines (see log)"
        )


@app.command("sample")
def sample_questions(
    subject: str = typer.Argument(..., help="Subject directory name"),
    topic: str = typer.Argument(..., help="Topic file name without .txt"),
    count: int | None = typer.Option(None, "--count", "-n", help="Questions to draw (default: from config)"),
    seed: int | None = typer.Option(None, "--seed", help="Seed for a repeatable draw"),
    show_answers: bool = typer.Option(False, "--answers", help="Show the answer key"),
) -> None:
    """Print a random draw from one bank."""
    ctx = _build_context()
    questions = _draw(ctx, subject, topic, count or ctx.settings.question_count, seed)

    for number, question in enumerate(questions, start=1):
        _print_question(number, len(questions), question.text, dict(question.options))
        if show_answers:
            rprint(f"   [green]Answer: {question.correct_answer}[/green]")


@app.command("quiz")
def quiz(
    subject: str = typer.Argument(..., help="Subject directory name"),
    topic: str = typer.Argument(..., help="Topic file name without .txt"),
    count: int | None = typer.Option(None, "--count", "-n", help="Questions to draw (default: from config)"),
    seed: int | None = typer.Option(None, "--seed", help="Seed for a repeatable draw"),
) -> None:
    """
    Take an exam in the terminal.

    The outcome is appended to the results tree and wrong answers to the
    errors tree, under a file named for the session.
    """
    ctx = _build_context()
    questions = _draw(ctx, subject, topic, count or ctx.settings.question_count, seed)

    rprint(f"\n[bold cyan]{subject} · {topic}[/bold cyan]  ({len(questions)} questions)")
    started_at = datetime.now()
    answers = []
    for number, question in enumerate(questions, start=1):
        _print_question(number, len(questions), question.text, dict(question.options))
        answers.append(_ask_answer())

    outcome, error_record = grade_exam(subject, topic, questions, answers, started_at)

    style = "green" if outcome.score >= 60 else "red"
    console.print(
        Panel(
            f"[bold {style}]{outcome.score}[/bold {style}] points\n"
            f"Correct: {outcome.correct_count}  Wrong: {outcome.wrong_count}  Time: {outcome.total_time}",
            title="Result",
            expand=False,
        )
    )

    if error_record:
        for question in error_record.wrong_questions:
            rprint(
                f"  [red]✗[/red] {_render(question.question)}  "
                f"[dim]yours: {question.user_answer}[/dim]  [green]answer: {question.correct_answer}[/green]"
            )

    try:
        ctx.store.record_exam(outcome, error_record)
    except (StorageError, OSError) as e:
        logger.exception("Saving exam result failed")
        _fail(f"Result not saved: {e}")

    logger.info(f"Exam {subject}/{topic} finished: {outcome.score} points")


# ========================================
# REPORT COMMANDS
# ========================================


@app.command("stats")
def stats() -> None:
    """Score statistics across all saved exams."""
    ctx = _build_context()
    ctx.store.ensure_ready()
    result = statistics(ctx.store.outcomes())

    rprint("\n[bold cyan]Exam Statistics[/bold cyan]")
    rprint(f"  Total exams:   {result.total_exams}")
    rprint(f"  Average score: {result.average_score}")
    rprint(f"  Highest score: {result.highest_score}")
    rprint(f"  Subjects:      {result.subject_count}")

    if not result.subject_stats:
        rprint("\n[dim]No exams recorded yet[/dim]")
        return

    table = Table(title="By Subject", show_header=True)
    table.add_column("Subject", style="cyan")
    table.add_column("Exams", justify="right")
    table.add_column("Average", justify="right", style="green")
    table.add_column("Highest", justify="right", style="yellow")
    for subject, subject_stats in sorted(result.subject_stats.items()):
        table.add_row(
            subject,
            str(subject_stats.count),
            str(subject_stats.average_score),
            str(subject_stats.highest_score),
        )
    console.print(table)


@app.command("trend")
def trend(
    days: int | None = typer.Option(None, "--days", "-d", help="Window in days (default: from config)"),
) -> None:
    """Daily mean scores over a trailing window."""
    ctx = _build_context()
    ctx.store.ensure_ready()
    window = days or ctx.settings.trend_window_days
    points = score_trend(ctx.store.outcomes(), window_days=window)

    if not points:
        rprint(f"[dim]No exams in the last {window} days[/dim]")
        return

    table = Table(title=f"Score Trend ({window} days)", show_header=True)
    table.add_column("Date", style="cyan")
    table.add_column("Exams", justify="right")
    table.add_column("Average", justify="right", style="green")
    table.add_column("")
    for point in points:
        table.add_row(point.date, str(point.count), str(point.average_score), "█" * (point.average_score // 5))
    console.print(table)


@app.command("history")
def history(
    subject: str | None = typer.Option(None, "--subject", "-s", help="Only this subject"),
    topic: str | None = typer.Option(None, "--topic", "-t", help="Only this topic (needs --subject)"),
    limit: int = typer.Option(20, "--limit", "-l", help="Rows to show"),
) -> None:
    """Most recent exam outcomes."""
    ctx = _build_context()
    store = ctx.store
    store.ensure_ready()

    if subject and topic:
        outcomes = store.outcomes_by_topic(subject, topic)
    elif subject:
        outcomes = store.outcomes_by_subject(subject)
    else:
        outcomes = store.outcomes()
    outcomes = sorted(outcomes, key=lambda o: o.timestamp, reverse=True)[:limit]

    if not outcomes:
        rprint("[dim]No exams recorded yet[/dim]")
        return

    table = Table(title="Exam History", show_header=True)
    table.add_column("Date", style="cyan")
    table.add_column("Time", style="dim")
    table.add_column("Subject")
    table.add_column("Topic")
    table.add_column("Correct", justify="right", style="green")
    table.add_column("Wrong", justify="right", style="red")
    table.add_column("Score", justify="right", style="bold")
    for outcome in outcomes:
        table.add_row(
            outcome.date,
            outcome.time,
            outcome.subject,
            outcome.topic,
            str(outcome.correct_count),
            str(outcome.wrong_count),
            str(outcome.score),
        )
    console.print(table)


# ========================================
# ERROR BOOK COMMANDS
# ========================================


@app.command("errors")
def errors(
    subject: str | None = typer.Option(None, "--subject", "-s", help="Only this subject"),
    topic: str | None = typer.Option(None, "--topic", "-t", help="Only this topic"),
    mastery: str | None = typer.Option(None, "--mastery", help="mastered | unmastered"),
    frequency: str | None = typer.Option(None, "--frequency", help="high (5+) | medium (2-4) | low (1)"),
    period: str | None = typer.Option(None, "--period", help="today | recent | week | month"),
    show_questions: bool = typer.Option(False, "--questions", "-q", help="List each wrong question"),
) -> None:
    """Error book: wrong answers grouped by exam session."""
    ctx = _build_context()
    tracker = ctx.tracker

    try:
        records = filter_error_records(
            ctx.store.error_records(),
            subject=subject,
            topic=topic,
            mastery=mastery,
            frequency=frequency,
            period=period,
        )
    except ValueError as e:
        _fail(str(e))

    summary = error_summary(records)
    rprint(
        f"\n[bold cyan]Error Book[/bold cyan]  wrong questions: {summary.total_wrong_questions}  "
        f"subjects: {summary.subject_count}  topics: {summary.topic_count}  "
        f"mastered: {tracker.mastered_count(records)}"
    )

    if not records:
        rprint("[dim]No error records match[/dim]")
        return

    table = Table(show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Date", style="cyan")
    table.add_column("Subject")
    table.add_column("Topic")
    table.add_column("Wrong", justify="right", style="red")
    table.add_column("Status")
    for record in records:
        table.add_row(
            record.id,
            record.recorded_at.strftime("%Y-%m-%d %H:%M"),
            record.subject,
            record.topic,
            str(record.error_count),
            "[green]mastered[/green]" if record.mastered else "[yellow]new[/yellow]",
        )
    console.print(table)

    if show_questions:
        for record in records:
            rprint(f"\n[bold]{record.id}[/bold]")
            for question in record.wrong_questions:
                mark = "[green]✓[/green]" if question.mastered else "[red]✗[/red]"
                rprint(
                    f"  {mark} [dim]{question.id}[/dim] {_render(question.question)}  "
                    f"[dim]yours: {question.user_answer}[/dim]  [green]answer: {question.correct_answer}[/green]"
                )


@app.command("master")
def master(
    record_id: str = typer.Argument(..., help="Error record id (see `quizlog errors`)"),
    question_id: str | None = typer.Option(None, "--question", help="Mark a single question instead"),
    unset: bool = typer.Option(False, "--unset", help="With --question: clear the flag"),
) -> None:
    """Toggle an error record's mastered flag, or set one question's."""
    ctx = _build_context()
    tracker = ctx.tracker

    try:
        if question_id:
            found = tracker.set_question_mastered(record_id, question_id, not unset)
            mastered = None
        else:
            found = True
            mastered = tracker.toggle_mastered(record_id)
    except (StorageError, OSError) as e:
        logger.exception("Saving mastery failed")
        _fail(f"Mastery not saved: {e}")

    if question_id:
        if not found:
            _fail(f"Unknown question: {question_id}")
        rprint(f"[green]✓[/green] {question_id} marked {'unmastered' if unset else 'mastered'}")
        return

    if mastered is None:
        _fail(f"Unknown error record: {record_id}")
    rprint(f"[green]✓[/green] {record_id} marked {'mastered' if mastered else 'unmastered'}")


@app.command("clear-mastered")
def clear_mastered(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Remove mastered records from the error book (error files are kept)."""
    ctx = _build_context()
    tracker = ctx.tracker

    count = tracker.mastered_count()
    if count == 0:
        rprint("[dim]No mastered records to clear[/dim]")
        return
    if not yes and not Confirm.ask(f"Clear {count} mastered error records?", default=False):
        rprint("[dim]Cancelled[/dim]")
        return

    try:
        cleared = tracker.clear_mastered()
    except (StorageError, OSError) as e:
        logger.exception("Clearing mastered records failed")
        _fail(f"Records not cleared: {e}")
    rprint(f"[green]✓[/green] Cleared {cleared} mastered records")


@app.command("practice")
def practice(
    subject: str | None = typer.Option(None, "--subject", "-s", help="Only this subject"),
    topic: str | None = typer.Option(None, "--topic", "-t", help="Only this topic"),
    limit: int | None = typer.Option(None, "--limit", "-n", help="Questions to practice"),
    seed: int | None = typer.Option(None, "--seed", help="Seed for a repeatable order"),
) -> None:
    """Re-answer unmastered wrong questions; correct answers become mastered."""
    ctx = _build_context()
    tracker = ctx.tracker
    records = filter_error_records(ctx.store.error_records(), subject=subject, topic=topic)
    items = tracker.practice_set(records, random.Random(seed) if seed is not None else None)
    if limit:
        items = items[:limit]

    if not items:
        rprint("[dim]Nothing to practice[/dim]")
        return

    correct = 0
    for number, item in enumerate(items, start=1):
        _print_question(number, len(items), item.question.question, item.question.options)
        answer = _ask_answer()
        try:
            is_correct = tracker.answer_practice(item, answer)
        except (StorageError, OSError) as e:
            logger.exception("Saving practice progress failed")
            _fail(f"Practice progress not saved: {e}")
        if is_correct:
            correct += 1
            rprint("[green]✓ Correct, marked mastered[/green]")
        else:
            rprint(f"[red]✗ The answer is {item.question.correct_answer}[/red]")

    rprint(f"\n[bold]Practice complete:[/bold] {correct}/{len(items)} ({round_half_up(correct / len(items) * 100)}%)")


# ========================================
# EXPORT COMMANDS
# ========================================

export_app = typer.Typer(help="Export reports to CSV")
app.add_typer(export_app, name="export")


@export_app.command("results")
def export_results(
    output: Path | None = typer.Option(None, "--output", "-o", help="CSV path (default: 考试报表_{today}.csv)"),
    subject: str | None = typer.Option(None, "--subject", "-s", help="Only this subject"),
    topic: str | None = typer.Option(None, "--topic", "-t", help="Only this topic (needs --subject)"),
) -> None:
    """Write exam outcomes, newest first, to a CSV report."""
    ctx = _build_context()
    store = ctx.store
    store.ensure_ready()

    outcomes = store.outcomes()
    if subject:
        outcomes = [o for o in outcomes if o.subject == subject and (not topic or o.topic == topic)]
    if not outcomes:
        _fail("No exam results to export")

    output = output or Path(report_filename(datetime.now().strftime("%Y-%m-%d")))
    logger.info(f"Exporting {len(outcomes)} exam results to {output}...")
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(outcomes_to_csv(outcomes), encoding="utf-8")
    except OSError as e:
        logger.exception("CSV export failed")
        _fail(f"Export failed: {e}")

    rprint(f"[green]✓[/green] Exported {len(outcomes)} exam results to {output}")


# ========================================
# SERVER
# ========================================


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind host (default: from config)"),
    port: int | None = typer.Option(None, "--port", help="Bind port (default: from config)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the persistence API used by the http storage backend."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "quizlog.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
