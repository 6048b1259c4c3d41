import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from forecastguard.domain.interfaces.user_interface import UserInterface
from forecastguard.domain.models.units import unit_suffix
from forecastguard.domain.models.weather import CacheRecord, TodayWeather

logger = logging.getLogger(__name__)

class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    @staticmethod
    def _local_time(timestamp: int, offset_seconds: int) -> str:
        if not timestamp:
            return "-"
        tz = timezone(timedelta(seconds=offset_seconds))
        return datetime.fromtimestamp(timestamp, tz=tz).strftime("%H:%M")

    def display_weather(self, weather: TodayWeather, **kwargs: Any) -> None:
        """Displays today's weather as a two-column table.

        Args:
            weather: The merged stable and live forecast.
        """
        symbol = unit_suffix("temperature", weather.units)
        stable, live = weather.stable, weather.live
        logger.debug(f"display_weather called: location={weather.location}, from_cache={weather.from_cache}")

        table = Table(box=SIMPLE, show_header=False, padding=(0, 1))
        table.add_column("Field", style="bold cyan", no_wrap=True)
        table.add_column("Value", style="white")
        table.add_row("Now", f"{live.current_temp:.0f}{symbol}, {live.current_conditions}")
        table.add_row("High / Low", f"{stable.temp_high:.0f}{symbol} / {stable.temp_low:.0f}{symbol}")
        table.add_row("Rain chance", f"{live.rain_chance * 100:.0f}%")
        table.add_row(f"Wind ({unit_suffix('wind', weather.units)})", live.wind_conditions)
        table.add_row("Sunrise", self._local_time(stable.sunrise, stable.timezone_offset))
        table.add_row("Sunset", self._local_time(stable.sunset, stable.timezone_offset))
        if live.weather_alerts:
            table.add_row("Alerts", Text(", ".join(live.weather_alerts), style="bold yellow"))

        source = "cached daily forecast + live conditions" if weather.from_cache else "full forecast"
        subtitle = f"[dim]{source} · {weather.last_updated.strftime('%H:%M:%S')}[/dim]"
        self.console.print(Panel(
            table,
            title=f"[bold white]{weather.location or 'Weather'}[/bold white]",
            subtitle=subtitle,
            border_style="cyan",
            box=ROUNDED,
            padding=(0, 1),
        ))

    def display_cache_record(self, record: CacheRecord, **kwargs: Any) -> None:
        """Displays the stored cache record, flagging it when it is not for today."""
        today = kwargs.get("today")
        table = Table(box=SIMPLE, show_header=False, padding=(0, 1))
        table.add_column("Field", style="bold cyan", no_wrap=True)
        table.add_column("Value", style="white")
        table.add_row("Location", record.location)
        table.add_row("Coordinates", f"{record.latitude}, {record.longitude}")
        table.add_row("Units", record.units)
        table.add_row("Created on", record.created_on_date.isoformat())
        table.add_row("Schema", str(record.schema_version))
        table.add_row("High / Low", f"{record.stable.temp_high} / {record.stable.temp_low}")
        if today is not None and record.created_on_date != today:
            table.add_row("Status", Text("stale (will be refreshed on next fetch)", style="yellow"))

        self.console.print(Panel(
            table,
            title="[bold blue]Weather cache[/bold blue]",
            border_style="blue",
            box=ROUNDED,
            padding=(0, 1),
        ))

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)
