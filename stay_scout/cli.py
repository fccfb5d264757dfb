# === FILE: stay_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа StayScout через командную строку.

Команды:
  serve     Запустить MCP-сервер на stdio
  call      Выполнить один инструмент и вывести JSON-конверт
  tools     Показать определения инструментов
  config    Показать текущую конфигурацию

Общие опции:
  --config PATH          Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --ignore-robots-txt    Не проверять robots.txt (также IGNORE_ROBOTS_TXT=true)
  --log-level LEVEL      Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH        Файл для логов (только stderr, если не указан)

Дополнительно:
  --version, -v          Показать версию StayScout

Пример:
  stay-scout call getListingPhotos --args '{"id": "12345"}'
"""
import sys
import asyncio
import json
from pathlib import Path

import click

from stay_scout import __version__
from stay_scout.config import apply_env, load_config
from stay_scout.engine import Engine, run_tool
from stay_scout.logger import init_logging
from stay_scout.server import serve

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='StayScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--ignore-robots-txt', 'ignore_robots_txt',
    is_flag=True,
    help='Отключить проверку robots.txt для всех вызовов'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stderr, если не указан)'
)
@click.pass_context
def cli(ctx, config_path, ignore_robots_txt, log_level, log_file):
    """Группа команд StayScout CLI."""
    init_logging(level=log_level, log_file=str(log_file) if log_file else None)
    try:
        cfg = apply_env(load_config(config_path))
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    if ignore_robots_txt:
        cfg = cfg.model_copy(update={'ignore_robots_txt': True})
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('serve', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def serve_cmd(ctx):
    """Запустить MCP-сервер на stdio."""
    try:
        asyncio.run(serve(ctx.obj['config']))
    except KeyboardInterrupt:
        click.echo('Остановлено', err=True)


@cli.command('call', context_settings=CONTEXT_SETTINGS)
@click.argument('tool_name')
@click.option(
    '--args', '-a', 'raw_args',
    default='{}', show_default=True,
    help='Аргументы инструмента в виде JSON-объекта'
)
@click.pass_context
def call_cmd(ctx, tool_name, raw_args):
    """Выполнить один инструмент и напечатать конверт ответа."""
    try:
        arguments = json.loads(raw_args)
    except json.JSONDecodeError as e:
        print_error(f'Неправильный JSON в --args: {e}')
    outcome = asyncio.run(run_tool(ctx.obj['config'], tool_name, arguments))
    click.echo(json.dumps(outcome.envelope(), ensure_ascii=False, indent=2))


@cli.command('tools', context_settings=CONTEXT_SETTINGS)
def tools_cmd():
    """Показать определения инструментов в JSON."""
    click.echo(json.dumps(Engine.list_tools(), ensure_ascii=False, indent=2))


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
