"""
CLI 模块

命令行接口实现。
"""

import asyncio
from pathlib import Path
from typing import Optional

import click
from loguru import logger

from modder import __version__
from modder.exceptions import ModderError
from modder.logger import add_file_sink, setup_logger
from modder.models import ModLoader, ModderConfig, OutcomeKind, Provider, summarize
from modder.orchestrator import ModderOrchestrator
from modder.utils import get_minecraft_dir, load_config

PROVIDER_CHOICE = click.Choice([p.value for p in Provider], case_sensitive=False)
LOADER_CHOICE = click.Choice([m.value for m in ModLoader], case_sensitive=False)


def _run(coro):
    """运行协程，把 ModderError 转换为 ClickException"""
    try:
        return asyncio.run(coro)
    except ModderError as e:
        logger.error(f"[错误] {e}")
        raise click.ClickException(str(e)) from e


def _echo_outcomes(outcomes):
    for outcome in outcomes:
        if outcome.kind == OutcomeKind.DOWNLOADED:
            click.echo(f"  ✓ {outcome}")
        elif outcome.kind == OutcomeKind.SKIPPED_DUPLICATE:
            click.echo(f"  - {outcome}")
        else:
            click.echo(f"  ✗ {outcome}")
    counts = summarize(outcomes)
    click.echo(
        "共 {} 项: {} 已下载, {} 未找到, {} 失败, {} 重复跳过".format(
            len(outcomes),
            counts[OutcomeKind.DOWNLOADED],
            counts[OutcomeKind.NOT_FOUND],
            counts[OutcomeKind.FAILED],
            counts[OutcomeKind.SKIPPED_DUPLICATE],
        )
    )


def _request(config: ModderConfig, version, directory, source, loader, **overrides):
    try:
        return config.request(
            game_version=version,
            destination=Path(directory) if directory else None,
            preferred=Provider.parse(source) if source else None,
            loader=ModLoader.parse(loader) if loader else None,
            **overrides,
        )
    except ModderError as e:
        raise click.ClickException(str(e)) from e


async def _with_orchestrator(config: ModderConfig, action):
    async with ModderOrchestrator(config) as orchestrator:
        return await action(orchestrator)


@click.group()
@click.option(
    "-c", "--config", "config_path", type=click.Path(dir_okay=False), help="配置文件路径"
)
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.option(
    "-m", "--minecraft", "use_game_dir", is_flag=True, help="使用默认 .minecraft/mods 目录"
)
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], debug: bool, use_game_dir: bool):
    """Modder - Minecraft 模组同步工具"""
    level = setup_logger(level="DEBUG" if debug else None)
    if config_path and not Path(config_path).exists():
        raise click.ClickException(f"配置文件不存在: {config_path}")
    config = _run(load_config(config_path))
    if use_game_dir:
        config.mods_dir = get_minecraft_dir() / "mods"
    if config.log_file:
        try:
            add_file_sink(config.log_file, level)
        except OSError as e:
            raise click.ClickException(f"无法写入日志文件 {config.log_file}: {e}") from e
    ctx.obj = config


@main.command()
@click.argument("query")
@click.option("-v", "--version", "game_version", help="Minecraft 版本")
@click.option("-l", "--loader", type=LOADER_CHOICE, help="模组加载器")
@click.option("-s", "--source", type=PROVIDER_CHOICE, help="首选来源")
@click.option("-d", "--dir", "directory", type=click.Path(file_okay=False), help="模组目录")
@click.option("--no-fallback", is_flag=True, help="首选来源失败时不尝试其他来源")
@click.option("--optional", "include_optional", is_flag=True, help="同时下载可选依赖")
@click.pass_obj
def add(config, query, game_version, loader, source, directory, no_fallback, include_optional):
    """添加模组及其依赖（QUERY 为名称、slug 或 owner/repo）"""
    request = _request(
        config,
        game_version,
        directory,
        source,
        loader,
        fallback=False if no_fallback else None,
        include_optional=include_optional or None,
    )
    outcomes = _run(
        _with_orchestrator(config, lambda o: o.add(query, request))
    )
    _echo_outcomes(outcomes)


@main.command(name="quick-add")
@click.argument("names", nargs=-1)
@click.option("-v", "--version", "game_version", help="Minecraft 版本")
@click.option("-l", "--loader", type=LOADER_CHOICE, help="模组加载器")
@click.option("-d", "--dir", "directory", type=click.Path(file_okay=False), help="模组目录")
@click.option("-n", "--limit", default=100, show_default=True, help="热门模组数量")
@click.option("--optional", "include_optional", is_flag=True, help="同时下载可选依赖")
@click.pass_obj
def quick_add(config, names, game_version, loader, directory, limit, include_optional):
    """从 Modrinth 热门模组中快速添加 NAMES；不给 NAMES 时列出候选"""
    if not names:
        candidates = _run(_with_orchestrator(config, lambda o: o.quick_candidates(limit)))
        for summary in candidates:
            click.echo(f"  {summary.slug}  {summary.title}")
        click.echo(f"共 {len(candidates)} 个候选")
        return

    request = _request(
        config,
        game_version,
        directory,
        None,
        loader,
        include_optional=include_optional or None,
    )
    outcomes = _run(
        _with_orchestrator(config, lambda o: o.quick_add(names, request, limit))
    )
    _echo_outcomes(outcomes)
    if any(outcome.kind == OutcomeKind.FAILED for outcome in outcomes):
        raise SystemExit(1)


@main.command()
@click.option("-v", "--version", "game_version", help="目标 Minecraft 版本")
@click.option("-l", "--loader", type=LOADER_CHOICE, help="模组加载器")
@click.option("-s", "--source", type=PROVIDER_CHOICE, help="首选来源")
@click.option("-d", "--dir", "directory", type=click.Path(file_okay=False), help="模组目录")
@click.option("--no-fallback", is_flag=True, help="首选来源失败时不尝试其他来源")
@click.option("--delete-previous", is_flag=True, help="更新成功后删除旧文件")
@click.pass_obj
def update(config, game_version, loader, source, directory, no_fallback, delete_previous):
    """把目录中的模组更新到目标版本"""
    request = _request(
        config,
        game_version,
        directory,
        source,
        loader,
        fallback=False if no_fallback else None,
        delete_previous=delete_previous or None,
    )
    outcomes = _run(_with_orchestrator(config, lambda o: o.update(request)))
    _echo_outcomes(outcomes)
    if any(outcome.kind == OutcomeKind.FAILED for outcome in outcomes):
        raise SystemExit(1)


@main.command(name="list")
@click.option("-d", "--dir", "directory", type=click.Path(file_okay=False), help="模组目录")
@click.pass_obj
def list_mods(config, directory):
    """列出目录中的模组及其来源"""
    directory = Path(directory) if directory else config.mods_dir
    pairs = _run(_with_orchestrator(config, lambda o: o.list(directory)))
    if not pairs:
        click.echo("目录中没有模组")
        return
    for artifact, identity in pairs:
        state = "启用" if artifact.enabled else "禁用"
        ref = identity.project_ref
        source = str(ref) if ref else "未知来源"
        click.echo(f"  [{state}] {artifact.name}  ({source})")


@main.command()
@click.argument("names", nargs=-1)
@click.option("-d", "--dir", "directory", type=click.Path(file_okay=False), help="模组目录")
@click.pass_obj
def toggle(config, names, directory):
    """启用 NAMES 中的模组，禁用其余模组"""
    directory = Path(directory) if directory else config.mods_dir
    orchestrator = ModderOrchestrator(config, clients={})
    try:
        renames = orchestrator.toggle(directory, names)
    except (ModderError, OSError) as e:
        raise click.ClickException(str(e)) from e
    for source, target in renames:
        click.echo(f"  {source.name} -> {target.name}")
    click.echo(f"改动了 {len(renames)} 个文件")


@main.command()
@click.argument("query")
@click.option("-s", "--source", type=PROVIDER_CHOICE, help="搜索的来源")
@click.option("-n", "--limit", default=10, show_default=True, help="结果数量")
@click.pass_obj
def search(config, query, source, limit):
    """在提供方上搜索模组"""
    provider = Provider.parse(source) if source else None
    results = _run(
        _with_orchestrator(config, lambda o: o.search(query, provider, limit))
    )
    if not results:
        click.echo("没有找到结果")
        return
    for summary in results:
        click.echo(f"  {summary.title} ({summary.provider}:{summary.slug or summary.project_id})")
        if summary.description:
            click.echo(f"      {summary.description}")


if __name__ == "__main__":
    main()
