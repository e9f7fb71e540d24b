"""Typer CLI entrypoint for Catalog-Crawler."""

from __future__ import annotations

import signal
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, CrawlerConfig
from .engine import KeySpace, StateStore
from .errors import AuthenticationError, StateError
from .logging_conf import configure_logging, crawler_log_path, tail_log
from .orchestrator import Orchestrator, RunSummary, build_orchestrator

app = typer.Typer(
    help="Catalog-Crawler 命令行工具",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

LOG_TAIL_LINES = 50
EXIT_INTERRUPTED = 130


@dataclass
class AppState:
    repository: ConfigRepository
    config: CrawlerConfig
    state_store: StateStore


def build_state() -> AppState:
    repository = ConfigRepository()
    config = repository.load_config()
    configure_logging(verbose=config.verbose)
    state_store = StateStore(
        repository.state_file(),
        repository.failed_log(),
        key_space=KeySpace(config.search.alphabet),
    )
    return AppState(repository=repository, config=config, state_store=state_store)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state()
        ctx.obj = state
    return state


@contextmanager
def _stop_on_signals(orchestrator: Orchestrator) -> Iterator[None]:
    """Translate SIGINT/SIGTERM into a cooperative stop request."""

    def _handler(signum, _frame) -> None:
        console.print(f"收到信号 {signum}，将在当前请求结束后停止…", style="yellow")
        orchestrator.request_stop()

    previous = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
    for sig in previous:
        signal.signal(sig, _handler)
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _render_summary(summary: RunSummary) -> Table:
    data = summary.as_dict()
    table = Table(title="运行结果", box=box.SIMPLE_HEAD, show_header=False)
    table.add_column("指标", style="cyan", no_wrap=True)
    table.add_column("数值", style="green", justify="right")
    labels = {
        "keys_completed": "完成前缀",
        "keys_drilled": "展开前缀",
        "keys_skipped": "跳过前缀",
        "keys_failed": "失败前缀",
        "pages": "请求页数",
        "records_queued": "入队记录",
        "duplicates": "重复记录",
        "missing_identity": "缺少标识",
        "batches": "上传批次",
        "uploaded": "上传记录",
        "failed_uploads": "上传重试",
        "replayed": "重放前缀",
        "pending_records": "未上传记录",
        "elapsed": "耗时（秒）",
    }
    for key, label in labels.items():
        table.add_row(label, str(data[key]))
    return table


def _render_status(state: AppState) -> Table:
    config = state.config
    table = Table(title="抓取状态", box=box.SIMPLE_HEAD, show_header=False)
    table.add_column("项目", style="cyan", no_wrap=True)
    table.add_column("值", style="magenta", overflow="fold")
    run_state = state.state_store.load()
    table.add_row("检查点", run_state.last_key or "（无）")
    table.add_row("待重放前缀", ", ".join(run_state.failed_keys) or "（无）")
    table.add_row("搜索接口", config.search.endpoint)
    table.add_row("目标存储", f"{config.destination.kind.value} · {config.destination.collection}")
    table.add_row("批量大小", str(config.destination.batch_size))
    table.add_row("状态文件", str(state.state_store.state_file))
    table.add_row("失败日志", str(state.state_store.failed_log))
    return table


@app.callback()
def main(ctx: typer.Context) -> None:
    ctx.obj = build_state()


@app.command("run", help="执行一次完整抓取：重放失败前缀、遍历前缀空间、上传剩余记录。")
def run(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    orchestrator = build_orchestrator(state.repository)
    try:
        try:
            orchestrator.authenticate()
        except AuthenticationError as exc:
            console.print(f"目标存储认证失败：{exc}", style="red")
            raise typer.Exit(code=1) from exc
        try:
            with _stop_on_signals(orchestrator):
                summary = orchestrator.run()
        except StateError as exc:
            console.print(f"无法读取检查点：{exc}", style="red")
            raise typer.Exit(code=1) from exc
    finally:
        orchestrator.close()
    console.print(_render_summary(summary))
    if summary.aborted:
        console.print("抓取已中断，再次运行将从检查点继续。", style="yellow")
        raise typer.Exit(code=EXIT_INTERRUPTED)
    console.print("抓取周期完成。", style="green")


@app.command("status", help="查看检查点与待重放的失败前缀。")
def status(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        console.print(_render_status(state))
    except StateError as exc:
        console.print(f"无法读取检查点：{exc}", style="red")
        raise typer.Exit(code=1) from exc


@app.command("log", help="查看最近的抓取日志。")
def show_log() -> None:
    lines = tail_log(crawler_log_path(), LOG_TAIL_LINES)
    if not lines:
        console.print("暂无日志。", style="dim")
        raise typer.Exit(code=0)
    for line in lines:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


__all__ = ["app", "AppState", "build_state"]
