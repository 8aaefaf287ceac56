# === FILE: site_cache/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для SiteCache через командную строку.

Команды:
  cache     Построить кэш по конфигу (страницы + sitemap.xml)
  page      Сохранить одну страницу
  sitemap   Построить sitemap по каталогу с HTML-файлами
  config    Показать проверенную конфигурацию

Общие опции:
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования
  --version, -v       Показать версию SiteCache

Пример:
  site-cache cache --config configs/default.yaml
"""
import sys
import asyncio
from pathlib import Path

import click

from site_cache import __version__
from site_cache.config import MatchOptions, SessionConfig, SitemapOptions, load_config
from site_cache.engine import SiteCache, build_cache
from site_cache.logger import init_logging
from site_cache.sitemap import save_sitemap

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def _load(config_path):
    try:
        return load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteCache, version %(version)s')
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
    help='Путь к файлу логов (stdout, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
def cli(log_level, log_file, log_format):
    """Группа команд SiteCache CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )


@cli.command('cache', context_settings=CONTEXT_SETTINGS)
@click.option(
    '--config', '-c', 'config_path',
    default='configs/default.yaml',
    show_default=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
def cache(config_path):
    """Сохранить все страницы из конфига и записать sitemap."""
    cfg = _load(config_path)
    click.echo(f'Building cache in {cfg.dest}')
    try:
        result = asyncio.run(build_cache(cfg))
    except Exception as e:
        print_error(f'Ошибка при построении кэша: {e}')
    click.echo(f'Saved {len(result.files)} pages')
    if result.sitemap:
        click.echo(f'Sitemap: {result.sitemap}')


@cli.command('page', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option(
    '--dest', '-d', 'dest',
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help='Каталог для HTML-файла'
)
@click.option('--base-url', 'base_url', default=None, help='Базовый URL для абсолютных ссылок')
@click.option('--timeout', 'timeout', type=float, default=30.0, show_default=True, help='Таймаут браузера (секунд)')
@click.option('--headed', is_flag=True, help='Показать окно браузера')
def page(url, dest, base_url, timeout, headed):
    """Сохранить одну страницу URL в каталог DEST."""
    session = SessionConfig(timeout=timeout, headless=not headed)
    try:
        path = asyncio.run(SiteCache().save_html(url, session, base_url, dest))
    except Exception as e:
        print_error(f'Ошибка при сохранении {url}: {e}')
    click.echo(str(path))


@cli.command('sitemap', context_settings=CONTEXT_SETTINGS)
@click.argument('root', type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option('--pattern', '-p', default='**/*.html', show_default=True, help='Glob-шаблон файлов')
@click.option('--base-url', 'base_url', default='http://localhost', show_default=True, help='Хост для <loc>')
@click.option(
    '--output', '-o', 'output',
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help='Файл sitemap (по умолчанию ROOT/sitemap.xml)'
)
def sitemap(root, pattern, base_url, output):
    """Построить sitemap.xml по файлам каталога ROOT."""
    dest_file = output or root / 'sitemap.xml'
    try:
        path = asyncio.run(
            save_sitemap(pattern, MatchOptions(root=root), SitemapOptions(base_url=base_url), dest_file)
        )
    except Exception as e:
        print_error(f'Ошибка при построении sitemap: {e}')
    click.echo(str(path))


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.option(
    '--config', '-c', 'config_path',
    default='configs/default.yaml',
    show_default=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
def show_config(config_path):
    """Показать текущую конфигурацию в JSON."""
    cfg = _load(config_path)
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
