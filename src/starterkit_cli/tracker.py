from rich.tree import Tree

STATUS_SYMBOLS = {
    "pending": "[green dim]○[/green dim]",
    "running": "[cyan]○[/cyan]",
    "done": "[green]●[/green]",
    "error": "[red]●[/red]",
    "skipped": "[yellow]○[/yellow]",
}


class StepTracker:
    """Ordered list of pipeline steps rendered as a rich tree.

    A refresh callback can be attached so a surrounding ``Live`` display is
    redrawn whenever a step changes.
    """

    def __init__(self, title: str):
        self.title = title
        self.steps: list[dict] = []
        self._refresh_cb = None

    def attach_refresh(self, cb):
        self._refresh_cb = cb

    def add(self, key: str, label: str):
        if self.get(key) is None:
            self.steps.append({"key": key, "label": label, "status": "pending", "detail": ""})
            self._maybe_refresh()

    def get(self, key: str) -> dict | None:
        for step in self.steps:
            if step["key"] == key:
                return step
        return None

    def status(self, key: str) -> str | None:
        step = self.get(key)
        return step["status"] if step else None

    def start(self, key: str, detail: str = ""):
        self._update(key, "running", detail)

    def complete(self, key: str, detail: str = ""):
        self._update(key, "done", detail)

    def error(self, key: str, detail: str = ""):
        self._update(key, "error", detail)

    def skip(self, key: str, detail: str = ""):
        self._update(key, "skipped", detail)

    def _update(self, key: str, status: str, detail: str):
        step = self.get(key)
        if step is None:
            step = {"key": key, "label": key, "status": status, "detail": detail}
            self.steps.append(step)
        step["status"] = status
        if detail:
            step["detail"] = detail
        self._maybe_refresh()

    def _maybe_refresh(self):
        if self._refresh_cb:
            self._refresh_cb()

    def render(self) -> Tree:
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self.steps:
            status = step["status"]
            symbol = STATUS_SYMBOLS.get(status, " ")
            label = step["label"]
            detail = step["detail"].strip()
            if status == "pending":
                text = f"{label} ({detail})" if detail else label
                line = f"{symbol} [bright_black]{text}[/bright_black]"
            elif detail:
                line = f"{symbol} [white]{label}[/white] [bright_black]({detail})[/bright_black]"
            else:
                line = f"{symbol} [white]{label}[/white]"
            tree.add(line)
        return tree
