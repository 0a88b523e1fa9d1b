"""Typer CLI entrypoint for adlib-sync."""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, GlobalConfig, ScheduleConfig, ScheduleType, TrackedPage
from .engine import AdRecord, PageMetadata
from .helpers import extract_page_id_from_url
from .logging_conf import available_page_logs, configure_logging, log_dir, tail_log
from .orchestrator import SyncOrchestrator, SyncResult
from .scheduler import APSchedulerAdapter
from .store import BaseStore, build_store
from .ui import CollectionProgress

app = typer.Typer(
    help="adlib-sync 广告库同步命令行工具",
    no_args_is_help=True,
    rich_markup_mode=None,
)
sync_app = typer.Typer(name="sync", help="广告同步命令", no_args_is_help=True, rich_markup_mode=None)
page_app = typer.Typer(name="page", help="跟踪主页管理命令", no_args_is_help=True, rich_markup_mode=None)
schedule_app = typer.Typer(name="schedule", help="定时任务命令", no_args_is_help=True, rich_markup_mode=None)
log_app = typer.Typer(name="log", help="日志查看命令", no_args_is_help=True, rich_markup_mode=None)

console = Console()

DEFAULT_TRACK_INTERVAL = 86400


@dataclass
class AppState:
    repository: ConfigRepository
    global_config: GlobalConfig
    store: BaseStore
    orchestrator: SyncOrchestrator
    scheduler: APSchedulerAdapter


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    global_config = repository.load_global_config()
    store = build_store(global_config, repository.locator.project_root)
    orchestrator = SyncOrchestrator(store, global_config)
    return AppState(
        repository=repository,
        global_config=global_config,
        store=store,
        orchestrator=orchestrator,
        scheduler=APSchedulerAdapter(),
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


# 进度显示：仅在交互式终端开启
def _progress_default_enabled(state: AppState, quiet: bool) -> bool:
    if quiet or not state.global_config.enable_progress:
        return False
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _format_schedule(schedule: ScheduleConfig) -> str:
    if schedule.value in (None, "", {}):
        return schedule.type.value
    return f"{schedule.type.value} ({schedule.value})"


def _render_result_table(title: str, result: SyncResult) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("指标", style="cyan")
    table.add_column("数值", style="green", justify="right")
    table.add_row("主页 ID", result.page_id or "-")
    table.add_row("抓取广告", str(result.total_fetched))
    table.add_row("新增", str(result.new_count))
    table.add_row("更新", str(result.updated_count))
    table.add_row("错误", str(len(result.errors)))
    return table


def _report_result(title: str, result: SyncResult, quiet: bool) -> None:
    if quiet:
        status = "成功" if result.success else "失败"
        console.print(
            f"同步{status}：抓取 {result.total_fetched}，新增 {result.new_count}，"
            f"更新 {result.updated_count}，错误 {len(result.errors)}"
        )
    else:
        console.print(_render_result_table(title, result))
    for message in result.errors:
        console.print(f"- {message}", style="red" if not result.success else "yellow")
    if not result.success:
        raise typer.Exit(code=1)


def _render_pages_table(
    pages: Sequence[TrackedPage], metadata: dict[str, PageMetadata | None]
) -> Table:
    table = Table(title=f"主页总览 · 共 {len(metadata)} 个", box=box.SIMPLE_HEAD)
    table.add_column("主页 ID", style="cyan", no_wrap=True)
    table.add_column("名称")
    table.add_column("跟踪", style="magenta")
    table.add_column("调度策略", style="yellow", overflow="fold")
    table.add_column("上次同步", style="dim")
    table.add_column("总数", justify="right")
    table.add_column("投放中", style="green", justify="right")
    table.add_column("已停投", style="red", justify="right")
    tracked = {page.page_id: page for page in pages}
    for page_id, meta in metadata.items():
        page = tracked.get(page_id)
        if page is None:
            tracking, schedule = "否", "-"
        else:
            tracking = "是" if page.enabled else "已停用"
            schedule = _format_schedule(page.schedule)
        name = (meta.page_name if meta else None) or (page.page_name if page else None) or "-"
        table.add_row(
            page_id,
            name,
            tracking,
            schedule,
            meta.last_synced if meta else "未同步",
            str(meta.total_ads) if meta else "-",
            str(meta.active_ads) if meta else "-",
            str(meta.inactive_ads) if meta else "-",
        )
    return table


def _render_ads_table(records: Sequence[AdRecord], limit: int) -> Table:
    shown = list(records)[:limit]
    table = Table(title=f"广告列表 · 显示 {len(shown)}/{len(records)}", box=box.SIMPLE_HEAD)
    table.add_column("广告 ID", style="cyan", no_wrap=True)
    table.add_column("状态")
    table.add_column("开始投放", style="dim")
    table.add_column("停止投放", style="dim")
    table.add_column("文案", overflow="ellipsis", max_width=48)
    for record in shown:
        body = (record.creative_bodies or [""])[0] or ""
        table.add_row(
            record.archive_id,
            "[green]投放中[/]" if record.is_active else "[red]已停投[/]",
            str(record.delivery_start_time or "-"),
            str(record.delivery_stop_time or "-"),
            str(body).replace("\n", " "),
        )
    return table


def _render_jobs_table(jobs: Iterable[dict]) -> Table:
    table = Table(title="调度队列", box=box.SIMPLE_HEAD)
    table.add_column("任务 ID", style="cyan", no_wrap=True)
    table.add_column("下次执行", style="green")
    table.add_column("触发器", style="magenta", overflow="fold")
    for job in jobs:
        table.add_row(
            str(job.get("id", "-")),
            str(job.get("next_run_time", "-")),
            str(job.get("trigger", "-")),
        )
    return table


app.add_typer(sync_app, name="sync", help="执行首次或增量同步")
app.add_typer(page_app, name="page", help="管理跟踪的主页（list/show/track/untrack）")
app.add_typer(schedule_app, name="schedule", help="按计划运行增量同步")
app.add_typer(log_app, name="log", help="查看日志文件")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="开启调试日志", is_flag=True)
) -> None:
    ctx.obj = build_state(verbose)


@sync_app.command("initial", help="从广告库链接执行首次全量同步。")
def sync_initial(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="广告库页面链接。"),
    max_records: Optional[int] = typer.Option(None, "--max", min=1, help="最多采集的广告数量。"),
    quiet: bool = typer.Option(False, "--quiet", help="只输出精简结果。", is_flag=True),
) -> None:
    state = _get_state(ctx)
    label = extract_page_id_from_url(url) or "首次同步"
    progress = CollectionProgress(label, enabled=_progress_default_enabled(state, quiet))
    progress.begin()
    try:
        result = state.orchestrator.initial_sync(
            url, max_records=max_records, on_progress=progress.on_cycle
        )
    finally:
        progress.close()
    _report_result("首次同步结果", result, quiet)


@sync_app.command("incremental", help="对已同步主页执行增量同步。")
def sync_incremental(
    ctx: typer.Context,
    page_id: str = typer.Argument(..., help="主页 ID。"),
    quiet: bool = typer.Option(False, "--quiet", help="只输出精简结果。", is_flag=True),
) -> None:
    state = _get_state(ctx)
    progress = CollectionProgress(page_id, enabled=_progress_default_enabled(state, quiet))
    progress.begin()
    try:
        result = state.orchestrator.incremental_sync(page_id, on_progress=progress.on_cycle)
    finally:
        progress.close()
    _report_result(f"{page_id} 增量同步结果", result, quiet)


@sync_app.command("all", help="依次对全部跟踪主页执行增量同步。")
def sync_all(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    results = state.orchestrator.sync_tracked_pages(state.repository)
    if not results:
        console.print("暂无启用的跟踪主页，先使用 `adlib-sync page track` 添加。", style="yellow")
        return
    table = Table(title="批量同步结果", box=box.SIMPLE_HEAD)
    table.add_column("主页 ID", style="cyan", no_wrap=True)
    table.add_column("状态")
    table.add_column("抓取", justify="right")
    table.add_column("新增", justify="right")
    table.add_column("更新", justify="right")
    table.add_column("错误", justify="right")
    failed = 0
    for page_id, result in results.items():
        if not result.success:
            failed += 1
        table.add_row(
            page_id,
            "[green]成功[/]" if result.success else "[red]失败[/]",
            str(result.total_fetched),
            str(result.new_count),
            str(result.updated_count),
            str(len(result.errors)),
        )
    table.add_row(
        "合计",
        f"{len(results) - failed}/{len(results)}",
        str(sum(r.total_fetched for r in results.values())),
        str(sum(r.new_count for r in results.values())),
        str(sum(r.updated_count for r in results.values())),
        str(sum(len(r.errors) for r in results.values())),
        style="bold",
    )
    console.print(table)
    if failed:
        raise typer.Exit(code=1)


@page_app.command("list", help="查看跟踪主页与已同步主页。")
def page_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    pages = state.repository.list_pages()
    page_ids = [page.page_id for page in pages]
    for page_id in state.store.list_pages():
        if page_id not in page_ids:
            page_ids.append(page_id)
    if not page_ids:
        console.print("暂无主页数据，先运行 `adlib-sync sync initial`。", style="yellow")
        return
    metadata = {page_id: state.store.get_metadata(page_id) for page_id in page_ids}
    console.print(_render_pages_table(pages, metadata))


@page_app.command("show", help="查看主页统计与已存储广告。")
def page_show(
    ctx: typer.Context,
    page_id: str = typer.Argument(..., help="主页 ID。"),
    limit: int = typer.Option(20, "--limit", min=1, help="最多显示的广告条数。"),
) -> None:
    state = _get_state(ctx)
    metadata, records = state.orchestrator.page_summary(page_id)
    if metadata is None and not records:
        console.print(f"未找到主页 `{page_id}` 的同步数据。", style="red")
        raise typer.Exit(code=1)
    if metadata is not None:
        summary = Table(title=f"{metadata.page_name or page_id} 统计", box=box.SIMPLE_HEAD, show_header=False)
        summary.add_column("字段", style="cyan")
        summary.add_column("值", style="green")
        summary.add_row("主页 ID", metadata.page_id)
        summary.add_row("上次同步", metadata.last_synced)
        summary.add_row("总数", str(metadata.total_ads))
        summary.add_row("投放中", str(metadata.active_ads))
        summary.add_row("已停投", str(metadata.inactive_ads))
        console.print(summary)
    console.print(_render_ads_table(records, limit))


@page_app.command("track", help="添加或更新跟踪主页。")
def page_track(
    ctx: typer.Context,
    page_id: str = typer.Argument(..., help="主页 ID。"),
    name: Optional[str] = typer.Option(None, "--name", help="主页名称。"),
    cron: Optional[str] = typer.Option(None, "--cron", help="Cron 表达式，例如 '0 3 * * *'。"),
    interval: Optional[int] = typer.Option(None, "--interval", min=1, help="运行间隔（秒）。"),
) -> None:
    state = _get_state(ctx)
    if cron and interval:
        console.print("不能同时指定 --cron 与 --interval。", style="red")
        raise typer.Exit(code=1)
    if cron:
        schedule = {"type": ScheduleType.CRON, "value": cron}
    else:
        schedule = {"type": ScheduleType.INTERVAL, "value": interval or DEFAULT_TRACK_INTERVAL}
    try:
        page = TrackedPage(page_id=page_id, page_name=name, schedule=schedule)
    except ValidationError as exc:
        console.print(f"主页配置无效：{exc.errors()[0]['msg']}", style="red")
        raise typer.Exit(code=1) from exc
    path = state.repository.save_page(page)
    console.print(f"主页 `{page.page_id}` 已加入跟踪（{_format_schedule(page.schedule)}）。", style="green")
    console.print(f"[dim]配置文件：{path}[/dim]")


@page_app.command("untrack", help="取消跟踪主页（保留已存储的广告）。")
def page_untrack(
    ctx: typer.Context,
    page_id: str = typer.Argument(..., help="主页 ID。"),
    yes: bool = typer.Option(False, "--yes", "-y", help="跳过确认。", is_flag=True),
) -> None:
    state = _get_state(ctx)
    if not yes and not typer.confirm(f"确认取消跟踪主页 `{page_id}`？"):
        console.print("已取消操作。", style="dim")
        raise typer.Exit(code=0)
    if not state.repository.delete_page(page_id):
        console.print(f"未找到跟踪主页 `{page_id}`。", style="red")
        raise typer.Exit(code=1)
    console.print(f"主页 `{page_id}` 已取消跟踪，已存储的广告保持不变。", style="green")


@schedule_app.command("run", help="启动调度器，按计划执行增量同步（Ctrl+C 退出）。")
def schedule_run(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    pages = state.repository.list_pages()
    scheduled = state.scheduler.schedule_pages(pages, state.orchestrator.incremental_sync)
    if not scheduled:
        console.print("暂无启用的跟踪主页，调度器未启动。", style="yellow")
        return
    state.scheduler.start()
    console.print(_render_jobs_table(state.scheduler.list_jobs()))
    console.print(f"调度器已启动，共 {scheduled} 个任务。按 Ctrl+C 退出。", style="green")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("正在停止调度器…", style="dim")
    finally:
        state.scheduler.shutdown()


@log_app.command("list", help="列出可用的日志文件。")
def log_list() -> None:
    logs = list(available_page_logs())
    console.print(f"日志目录：{log_dir()}", style="cyan")
    if not logs:
        console.print("暂未生成任何主页日志。", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("文件名", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="查看指定日志的最近内容。")
def log_show(
    page_id: Optional[str] = typer.Option(None, "--page", help="主页 ID（为空则展示全局日志）。"),
    tail: int = typer.Option(100, "--tail", min=1, help="显示最近 N 行内容。"),
) -> None:
    base_dir = log_dir()
    path = base_dir / "pages" / f"{page_id}.log" if page_id else base_dir / "sync.log"
    lines = tail_log(path, tail)
    if not lines:
        console.print("暂无日志信息，请稍后再试。", style="dim")
        return
    header = f"{'主页日志' if page_id else '全局日志'} · 最近 {len(lines)} 行"
    console.print(header, style="cyan")
    console.print("".join(lines), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
