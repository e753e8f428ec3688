"""Console symptom checker that recommends a specialty and lists matching doctors."""

import sys

from rich.console import Console
from rich.markdown import Markdown
from rich.status import Status
from rich.table import Table

from telemed_booking.clinic.database import BookingRepository, UserRepository, init_database
from telemed_booking.config import Settings
from telemed_booking.logging_config import setup_logging
from telemed_booking.symptom_checker import SymptomAnalysis, SymptomQuestion, SymptomResponse, analyze, get_questions

console = Console()

QUIT_WORDS = ("quit", "exit")


class QuitSession(Exception):
    """Raised when the user ends the questionnaire early."""
    pass


def format_question(question: SymptomQuestion) -> str:
    """Render a question and its numbered options as Markdown."""
    lines = [f"**{question.question}**", ""]
    if question.type == "scale":
        lines.append("Enter a number from 1 to 10.")
    else:
        for i, option in enumerate(question.options or [], 1):
            lines.append(f"{i}. {option}")
        if question.type == "multiple":
            lines.append("")
            lines.append("Separate several choices with commas.")
    return "\n".join(lines)


def _match_option(options: list[str], raw: str) -> str | None:
    """Match a number or option text (case-insensitive) to an option."""
    raw = raw.strip()
    if raw.isdigit():
        index = int(raw) - 1
        return options[index] if 0 <= index < len(options) else None
    for option in options:
        if option.lower() == raw.lower():
            return option
    return None


def parse_answer(question: SymptomQuestion, raw: str):
    """
    Convert typed input into an answer for the question.

    Returns None when the input is not a valid answer.
    """
    raw = raw.strip()
    if not raw:
        return None

    if question.type == "scale":
        if not raw.isdigit():
            return None
        level = int(raw)
        return level if 1 <= level <= 10 else None

    options = question.options or []
    if question.type == "single":
        return _match_option(options, raw)

    # multiple
    chosen = []
    for part in raw.split(","):
        option = _match_option(options, part)
        if option is None:
            return None
        if option not in chosen:
            chosen.append(option)
    return chosen or None


def read_input(prompt: str) -> str:
    """Read one line, raising QuitSession on EOF, Ctrl-C or a quit word."""
    try:
        user_input = console.input(prompt).strip()
        # Echo input when stdin is piped (not interactive)
        if not sys.stdin.isatty() and user_input:
            console.print(f"[dim]{user_input}[/dim]")
    except (EOFError, KeyboardInterrupt):
        raise QuitSession()
    if user_input.lower() in QUIT_WORDS:
        raise QuitSession()
    return user_input


def ask_question(question: SymptomQuestion) -> SymptomResponse:
    """Ask until a valid answer is given."""
    console.print(Markdown(format_question(question)))
    while True:
        answer = parse_answer(question, read_input("[bold green]You:[/bold green] "))
        if answer is not None:
            return SymptomResponse(question_id=question.id, answer=answer)
        console.print("[yellow]Please pick one of the listed options.[/yellow]")


def format_analysis(analysis: SymptomAnalysis) -> str:
    """Render the analysis as Markdown."""
    return (
        f"**Recommended specialty:** {analysis.specialty}\n\n"
        f"**Urgency:** {analysis.urgency}\n\n"
        f"{analysis.recommendation}"
    )


def doctors_table(users: UserRepository, bookings: BookingRepository, specialty: str) -> Table | None:
    """Build a table of doctors in the specialty, or None if there are none."""
    doctors = users.list_doctors(specialty=specialty)
    if not doctors:
        return None

    table = Table(title=f"{specialty} doctors")
    table.add_column("Doctor", style="cyan")
    table.add_column("Experience")
    table.add_column("Rating")
    table.add_column("Price", justify="right")
    table.add_column("Languages")
    table.add_column("Open slots", justify="right")
    for doctor in doctors:
        table.add_row(
            doctor.name,
            f"{doctor.experience} yrs",
            f"{doctor.rating:.1f}",
            f"${doctor.price:.2f}",
            ", ".join(doctor.languages),
            str(len(bookings.list_available(doctor.id))),
        )
    return table


def run_questionnaire() -> list[SymptomResponse]:
    return [ask_question(question) for question in get_questions()]


def main():
    """Main questionnaire loop."""
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    init_database(settings.db_path)
    users = UserRepository(settings.db_path)
    bookings = BookingRepository(settings.db_path, settings.meeting_base_url)

    console.print("[bold blue]Welcome to the symptom checker![/bold blue]")
    console.print("Type 'quit' or 'exit' to leave at any time.\n")

    try:
        responses = run_questionnaire()
    except QuitSession:
        console.print("\n[bold blue]Goodbye![/bold blue]")
        return

    with Status("Analyzing...", console=console, spinner="dots"):
        analysis = analyze(responses)
    console.print(Markdown(format_analysis(analysis)), "\n")

    table = doctors_table(users, bookings, analysis.specialty)
    if table is None:
        console.print(f"[dim]No {analysis.specialty} doctors are registered yet.[/dim]")
    else:
        console.print(table)

    console.print("[bold blue]Session complete.[/bold blue]")


if __name__ == "__main__":
    main()
