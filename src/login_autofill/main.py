"""
Login Autofill - CLI Entry Point.

Configuration Priority:
    1. CLI arguments (--visible, --typing-mode, etc.)
    2. Environment variables (LOGIN_AUTOFILL__ENTRY__TYPING_MODE, etc.)
    3. Config file (login-autofill.yaml)

Usage:
    login-autofill detect https://portal.example.com/login
    login-autofill login https://portal.example.com/login -u alice --domain CORP --visible
    login-autofill stats portal.example.com
"""

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from login_autofill import __version__
from login_autofill.browsers.playwright_browser import PlaywrightBrowser
from login_autofill.config import Settings, get_settings, load_config
from login_autofill.engine.credential_entry import CredentialEntry
from login_autofill.engine.detection_metrics import DetectionMetrics
from login_autofill.engine.detector import LoginDetector
from login_autofill.engine.keystrokes import Typist, TypingMode
from login_autofill.engine.models import Credentials, DetectedForm
from login_autofill.engine.scoring import analyze_confidence, selector_for
from login_autofill.exceptions import LoginAutofillError
from login_autofill.interfaces.browser import BrowserType
from login_autofill.reporting.screenshot_manager import ScreenshotManager
from login_autofill.utils.logging import setup_logging

# Create the CLI app
app = typer.Typer(
    name="login-autofill",
    help="Detect web login forms and enter credentials into them",
    add_completion=False,
)

console = Console()


def _load_settings(config: Optional[str], visible: bool, verbose: bool) -> Settings:
    """Settings from config/env, with CLI flags applied on top."""
    try:
        settings = load_config(config_path=config) if config else get_settings()
    except LoginAutofillError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)

    overrides: dict = {}
    if visible:
        overrides["browser"] = {"headless": False}
    if verbose:
        overrides["logging"] = {"level": "DEBUG"}
    if overrides:
        settings = settings.merge_with(overrides)

    setup_logging(
        level=settings.logging.level,
        log_file=settings.logging.file,
        json_format=settings.logging.json_format,
    )
    return settings


async def _open_page(settings: Settings, url: str):
    """Launch the browser and navigate; returns (browser, page)."""
    browser = PlaywrightBrowser()
    await browser.launch(
        headless=settings.browser.headless,
        browser_type=BrowserType(settings.browser.browser_type),
        channel=settings.browser.channel,
        slow_mo=settings.browser.slow_mo or None,
    )
    page = await browser.new_page(
        viewport={"width": settings.browser.viewport_width, "height": settings.browser.viewport_height},
    )
    await page.goto(url, timeout=settings.browser.timeout_ms)
    return browser, page


def _build_metrics(settings: Settings) -> DetectionMetrics:
    """Metrics store for a CLI run; in-memory when metrics are disabled."""
    metrics = settings.metrics
    return DetectionMetrics(
        cache_path=metrics.cache_path if metrics.enabled else None,
        max_attempts=metrics.max_attempts,
        min_samples=metrics.min_samples,
    )


def _form_table(form: DetectedForm) -> Table:
    table = Table(title=f"Login form ({form.method.value if form.method else '?'}, confidence {form.confidence})")
    table.add_column("Role", style="cyan")
    table.add_column("Element")
    table.add_column("Selector", style="dim")
    table.add_column("Confidence", justify="right")
    for role, handle in form.fields().items():
        if handle is None:
            table.add_row(role.value, "[dim]not found[/dim]", "", "")
            continue
        table.add_row(
            role.value,
            handle.describe_short(),
            selector_for(handle),
            str(analyze_confidence(handle, role)),
        )
    return table


@app.command()
def detect(
    url: str = typer.Argument(..., help="URL of the login page"),
    visible: bool = typer.Option(False, "--visible", "-v", help="Run with visible browser"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to a YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Detect the login form on a page and show the classified fields.

    Examples:
        login-autofill detect https://portal.example.com/login
        login-autofill detect https://portal.example.com/login --visible --verbose
    """
    settings = _load_settings(config, visible, verbose)

    console.print(Panel.fit(
        f"[bold blue]Login Autofill[/bold blue]\n"
        f"[dim]Detect:[/dim] {url}",
        border_style="blue",
    ))

    found = asyncio.run(_detect_async(settings, url))
    if not found:
        raise typer.Exit(1)


async def _detect_async(settings: Settings, url: str) -> bool:
    browser = None
    metrics = _build_metrics(settings)
    try:
        browser, page = await _open_page(settings, url)
        detector = LoginDetector(settings, metrics=metrics)
        form = await detector.detect(page)
        if form is None:
            console.print("\n[red]✗ No login form detected[/red]")
            for attempt in detector.attempts:
                console.print(f"  [dim]{attempt.method.value}:[/dim] {attempt.reason}")
            return False

        console.print(_form_table(form))
        return True

    except LoginAutofillError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        return False

    finally:
        if browser:
            await browser.close()
        metrics.flush()


@app.command()
def login(
    url: str = typer.Argument(..., help="URL of the login page"),
    username: str = typer.Option(..., "--username", "-u", help="Username or email"),
    password: Optional[str] = typer.Option(
        None, "--password", "-p", help="Password (prompted when omitted)", envvar="LOGIN_AUTOFILL_PASSWORD",
    ),
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help="Domain or tenant to select"),
    typing_mode: Optional[TypingMode] = typer.Option(
        None, "--typing-mode", "-t", help="direct, chunked or per_character (default: from config)",
    ),
    visible: bool = typer.Option(False, "--visible", "-v", help="Run with visible browser"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to a YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Detect the login form on a page, fill it and submit.

    Examples:
        login-autofill login https://portal.example.com/login -u alice
        login-autofill login https://portal.example.com/login -u alice -d CORP --typing-mode per_character
    """
    settings = _load_settings(config, visible, verbose)
    if typing_mode is not None:
        settings = settings.merge_with({"entry": {"typing_mode": typing_mode.value}})

    if password is None:
        password = typer.prompt("Password", hide_input=True)

    console.print(Panel.fit(
        f"[bold blue]Login Autofill[/bold blue]\n"
        f"[dim]Login:[/dim] {url}\n"
        f"[dim]User:[/dim] {username}"
        + (f"\n[dim]Domain:[/dim] {domain}" if domain else ""),
        border_style="blue",
    ))

    credentials = Credentials(username=username, password=password, domain=domain)
    success = asyncio.run(_login_async(settings, url, credentials))
    if not success:
        raise typer.Exit(1)


async def _login_async(settings: Settings, url: str, credentials: Credentials) -> bool:
    browser = None
    metrics = _build_metrics(settings)
    try:
        browser, page = await _open_page(settings, url)
        form = await LoginDetector(settings, metrics=metrics).detect(page)
        if form is None:
            console.print("\n[red]✗ No login form detected[/red]")
            return False
        console.print(_form_table(form))

        screenshots = None
        if settings.diagnostics.screenshot_on_failure:
            screenshots = ScreenshotManager(settings.diagnostics.output_dir)

        entry = CredentialEntry(
            page,
            settings=settings.entry,
            typist=Typist.from_settings(settings.entry),
            screenshots=screenshots,
        )
        result = await entry.enter(form, credentials)

        steps = Table(title=f"Entry ({result.mode.value if result.mode else '?'} mode)")
        steps.add_column("Step", style="cyan")
        steps.add_column("Result")
        steps.add_column("Attempts", justify="right")
        steps.add_column("Duration", justify="right")
        for step in result.steps:
            outcome = "[green]ok[/green]" if step.success else f"[red]{step.error}[/red]"
            steps.add_row(step.name, outcome, str(step.attempts), f"{step.duration_ms:.0f}ms")
        console.print(steps)

        if result.success:
            note = " (Enter fallback)" if result.fallback_used else ""
            console.print(f"\n[green]✓ Credentials submitted{note}[/green]")
        else:
            console.print(f"\n[red]✗ Failed[/red]  {result.error or ''}")

        if not settings.browser.headless:
            console.print("\n[dim]Browser is open. Press Ctrl+C to close.[/dim]")
            try:
                await asyncio.sleep(3600)
            except (KeyboardInterrupt, asyncio.CancelledError):
                pass
        return result.success

    except LoginAutofillError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        logging.getLogger(__name__).debug("Login run failed", exc_info=True)
        return False

    finally:
        if browser:
            await browser.close()
        metrics.flush()


@app.command()
def stats(
    host: Optional[str] = typer.Argument(None, help="Host to show (default: all hosts)"),
    clear: bool = typer.Option(False, "--clear", help="Clear the statistics instead of showing them"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to a YAML config file"),
):
    """Show per-host detection statistics."""
    settings = _load_settings(config, visible=False, verbose=False)
    metrics = _build_metrics(settings)

    if clear:
        metrics.clear(host)
        console.print(f"[green]✓ Cleared statistics for {host or 'all hosts'}[/green]")
        return

    hosts = [host] if host else metrics.hosts()
    if not hosts:
        console.print("[dim]No detection statistics recorded yet.[/dim]")
        return

    for name in hosts:
        host_stats = metrics.get_stats(name)
        table = Table(title=name)
        table.add_column("Method", style="cyan")
        table.add_column("Success rate", justify="right")
        table.add_column("Avg confidence", justify="right")
        table.add_column("Avg time", justify="right")
        table.add_column("Attempts", justify="right")
        for method, values in host_stats.items():
            table.add_row(
                method,
                values["success_rate"],
                values["avg_confidence"],
                f"{values['avg_time_ms']}ms",
                str(values["attempts"]),
            )
        console.print(table)
        recommendation = metrics.recommend(f"https://{name}/")
        console.print(f"  [dim]Recommended first:[/dim] {recommendation.method.value} ({recommendation.reasoning})")


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]Login Autofill[/bold] v{__version__}")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
