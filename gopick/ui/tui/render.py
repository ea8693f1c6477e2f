"""
Renderer — SessionState → rich renderables.

Pure functions of (state, theme); no state of their own.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.text import Text

from gopick.core.models.history import HistoryAction
from gopick.core.models.session import SessionState, View
from gopick.ui.tui.theme import Theme

# Lines taken by title, search box, header and footer in the search view.
_CHROME_LINES = 15
_LINES_PER_ITEM = 4
_DESCRIPTION_WIDTH = 70


def truncate(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[: width - 3] + "..."


def progress_bar(percent: float, width: int = 40) -> str:
    percent = max(0.0, min(100.0, percent))
    filled = int(percent / 100 * width)
    return "█" * filled + "░" * (width - filled) + f" {percent:.0f}%"


def visible_indices(state: SessionState) -> range:
    """Window of result indices that fits the terminal, centred on the cursor."""
    total = len(state.results)
    max_visible = max(1, (state.height - _CHROME_LINES) // _LINES_PER_ITEM)
    if total <= max_visible:
        return range(total)

    start = max(0, state.cursor - max_visible // 2)
    end = start + max_visible
    if end > total:
        end = total
        start = max(0, end - max_visible)
    return range(start, end)


def render(state: SessionState, theme: Theme) -> RenderableType:
    if state.view == View.INSTALLING:
        return _dialog(state, render_installing(state, theme))
    if state.view == View.COMMANDS:
        return _dialog(state, render_commands(state, theme))
    if state.view == View.OPTIONS:
        return _dialog(state, render_options(state, theme))
    if state.view == View.HELP:
        return _dialog(state, render_help(theme))
    return render_search(state, theme)


def _dialog(state: SessionState, body: RenderableType) -> RenderableType:
    return Align(body, align="center", vertical="middle", height=state.height)


# ── Search ──────────────────────────────────────────────────────


def render_search(state: SessionState, theme: Theme) -> RenderableType:
    parts: list[RenderableType] = [Text("🚀 gopick - Go Package Search", style=theme.title), Text()]

    search = Text.assemble(("Search: ", theme.label), (state.query, theme.foreground))
    if not state.query:
        search.append("Search for Go packages...", style=theme.dimmed)
    if state.searching:
        search.append("  searching…", style=theme.dimmed)
    parts += [search, Text()]

    if state.results:
        header = f"📦 Results ({len(state.results)} packages)"
        if state.from_cache:
            header += " · cached"
        parts += [Text(header, style=theme.header), Text()]
        for idx in visible_indices(state):
            parts.append(render_package_item(state, idx, theme))
    elif state.query and not state.searching:
        parts.append(Text("No packages found", style=theme.dimmed))
    elif not state.query and state.recent:
        parts += [Text("📚 Recent History", style=theme.header), Text()]
        for entry in reversed(state.recent):
            line = Text.assemble(
                ("  " + entry.timestamp.astimezone().strftime("%H:%M") + " ", theme.dimmed),
                (entry.package, theme.package_name),
            )
            if entry.action == HistoryAction.INSTALLED:
                line.append(" ✓", style=theme.accent)
            parts.append(line)

    if state.message:
        parts += [Text(), Text(state.message, style=theme.message(state.message_kind.value))]

    parts += [Text(), render_footer(state, theme)]

    return Panel(Group(*parts), border_style=theme.border, padding=(1, 2))


def render_package_item(state: SessionState, idx: int, theme: Theme) -> Text:
    pkg = state.results[idx]
    is_cursor = idx == state.cursor

    item = Text()
    item.append(">" if is_cursor else " ", style=theme.cursor if is_cursor else "")
    item.append(" [x] " if idx in state.selected else " [ ] ", style=theme.accent)
    item.append(pkg.name, style=theme.cursor if is_cursor else theme.package_name)

    if pkg.is_installed:
        item.append(" ")
        item.append(" installed ", style=theme.installed_badge)
    if pkg.version:
        item.append(f" v{pkg.version}", style=theme.dimmed)
    if pkg.import_path in state.installed_paths:
        item.append(" ")
        item.append(" cached ", style=theme.cached_badge)

    if pkg.description:
        item.append("\n    " + truncate(pkg.description, _DESCRIPTION_WIDTH), style=theme.dimmed)
    item.append("\n    " + pkg.import_path, style=theme.foreground)
    return item


def render_footer(state: SessionState, theme: Theme) -> Text:
    footer = Text()
    for key, label in (
        ("[↑↓]", "Navigate"),
        ("[Tab]", "Select"),
        ("[Enter]", "Proceed"),
        ("[Shift+H]", "Help"),
        ("[Shift+Q]", "Quit"),
    ):
        footer.append(key, style=theme.help_key)
        footer.append(f" {label}  ", style=theme.dimmed)

    if state.selected:
        footer.append(f"\n✓ {len(state.selected)} selected", style=theme.accent)
    return footer


# ── Dialogs ─────────────────────────────────────────────────────


def render_options(state: SessionState, theme: Theme) -> RenderableType:
    count = len(state.selected_packages())
    options = Text()
    for key, label in (
        ("G", "Give me the command"),
        ("D", "Download for me (run in shell)"),
        ("I", "Install now"),
        ("V", "View the command"),
        ("C", "Cancel"),
    ):
        options.append(f"[{key}] ", style=theme.help_key)
        options.append(f"{label}\n", style=theme.foreground)

    body = Group(
        Text(f"📦 {count} package(s) selected", style=theme.title, justify="center"),
        Text(),
        Text("What would you like to do?", justify="center"),
        Text(),
        options,
    )
    return Panel(body, border_style=theme.primary, padding=(1, 4), expand=False)


def render_commands(state: SessionState, theme: Theme) -> RenderableType:
    parts: list[RenderableType] = [
        Text("📋 Installation Commands", style=theme.title),
        Text(),
        Text("Copy and run these commands:"),
        Text(),
    ]
    for command in state.commands:
        parts += [Text(f" {command} ", style=f"{theme.accent} on #1E1E1E"), Text()]
    parts.append(Text("Press [ESC] to go back", style=theme.dimmed))
    return Panel(Group(*parts), border_style=theme.primary, padding=(1, 4), width=74)


def render_installing(state: SessionState, theme: Theme) -> RenderableType:
    message = state.install_message or "Preparing installation..."
    body = Group(
        Text("📦 Installing Packages", style=theme.title, justify="center"),
        Text(),
        Text(truncate(message, 60), justify="center"),
        Text(),
        Text(progress_bar(state.install_percent), style=theme.accent, justify="center"),
    )
    return Panel(body, border_style=theme.primary, padding=(1, 4), expand=False)


def render_help(theme: Theme) -> RenderableType:
    def rows(items: tuple[tuple[str, str], ...]) -> Text:
        text = Text()
        for key, desc in items:
            text.append(f"{key:<10}", style=theme.help_key)
            text.append(f" {desc}\n")
        return text

    body = Group(
        Text("⌨️  Keyboard Shortcuts", style=theme.title),
        Text(),
        Text("Navigation & Search:", style=theme.header),
        rows((
            ("Type", "Search packages (any letter/number/space)"),
            ("↑/↓", "Navigate results"),
            ("Tab", "Select/deselect package"),
            ("Enter", "Proceed with selected"),
            ("Esc", "Clear search / Quit if empty"),
        )),
        Text("Commands (Shift+Key or Ctrl+Key):", style=theme.header),
        rows((
            ("Shift+A", "Select all"),
            ("Shift+N", "Deselect all"),
            ("Shift+H", "Toggle help"),
            ("Shift+C", "Clear cache"),
            ("Shift+Q", "Quit"),
        )),
        Text("Press any key to close help...", style=theme.dimmed),
    )
    return Panel(body, border_style=theme.primary, padding=(1, 4), expand=False)
