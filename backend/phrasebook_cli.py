"""CLI for the phrasebook data directory"""

import click
import sys
from pathlib import Path

from phrasebook_config.loader import ConfigLoader
from phrasebook_core.catalog import PhraseCatalog
from phrasebook_core.csv_io import PhraseCSV
from phrasebook_core.identity import Deduplicator, derive_id, derive_legacy_id
from phrasebook_core.logger import setup_logger
from phrasebook_core.progress import ProgressMigrator, StudyProgress
from phrasebook_core.store import PhraseStore


def _fail(message: str):
    click.echo(f"✗ Error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.option('--config', 'config_path', default=None, help='Path to phrasebook.yaml')
@click.option('--data-dir', default=None, help='Override the data directory')
@click.pass_context
def cli(ctx, config_path, data_dir):
    """Phrasebook CLI"""
    try:
        config = ConfigLoader.load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        _fail(str(e))
    if data_dir:
        config['data_dir'] = data_dir

    setup_logger(log_dir=config.get('log_dir'), level=config.get('log_level', 'INFO'))
    ctx.obj = {'config': config}


def _store(ctx) -> PhraseStore:
    return PhraseStore(ctx.obj['config']['data_dir'])


@cli.command('id')
@click.argument('korean')
@click.argument('english')
@click.option('--legacy', is_flag=True, help='Print the legacy trim+lowercase id instead')
def show_id(korean: str, english: str, legacy: bool):
    """Print the identifier for a phrase"""
    click.echo(derive_legacy_id(korean, english) if legacy else derive_id(korean, english))


@cli.command('import')
@click.argument('csv_file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_csv(ctx, csv_file: str):
    """Merge phrases from a CSV file"""
    try:
        incoming = PhraseCSV.read_file(csv_file)
    except UnicodeDecodeError:
        _fail("CSV file must be UTF-8 encoded")
    if not incoming:
        _fail("No valid phrases found in CSV")

    store = _store(ctx)
    catalog = PhraseCatalog(store.read_phrases())
    added = catalog.merge(incoming)
    store.write_phrases(catalog.phrases)
    click.echo(f"✓ Import successful: {added} new phrases added ({len(catalog)} total)")


@cli.command()
@click.option('--require-audio', is_flag=True, help='Also drop phrases without audio')
@click.pass_context
def dedupe(ctx, require_audio: bool):
    """Remove phrases that share an identifier (backs up first)"""
    store = _store(ctx)
    phrases = store.read_phrases()
    if not phrases:
        _fail(f"{store.phrases_path} not found or empty")

    unique = Deduplicator.deduplicate(phrases, require_audio=require_audio)
    backup = store.backup_phrases()
    store.write_phrases(unique)
    click.echo(
        f"✓ Deduped: kept {len(unique)} rows, removed {len(phrases) - len(unique)}. "
        f"Backup: {Path(backup).name}"
    )


@cli.command()
@click.option('--dry-run', is_flag=True, help='Report without writing')
@click.pass_context
def migrate(ctx, dry_run: bool):
    """Re-key studied progress to current identifiers"""
    store = _store(ctx)
    result = ProgressMigrator.run(store.read_phrases(), store.read_progress())

    for source, count in result.carried.items():
        click.echo(f"  {source}: {count}")
    if result.dropped:
        click.echo(f"  dropped: {len(result.dropped)}")

    if not result.changed:
        click.echo("✓ Progress already uses current ids")
        return
    if dry_run:
        click.echo(f"Would rewrite progress with {len(result.progress)} studied")
        return

    store.write_progress(result.progress)
    click.echo(f"✓ Progress rewritten: {len(result.progress)} studied")


@cli.command()
@click.argument('phrase_id')
@click.pass_context
def mark(ctx, phrase_id: str):
    """Mark a phrase studied"""
    store = _store(ctx)
    progress = store.read_progress()
    updated = StudyProgress.mark_studied(progress, phrase_id)
    if updated is not progress:
        store.write_progress(updated)
    click.echo(f"✓ {phrase_id} studied")


@cli.command()
@click.argument('phrase_id')
@click.pass_context
def unmark(ctx, phrase_id: str):
    """Unmark a studied phrase"""
    store = _store(ctx)
    progress = store.read_progress()
    updated = StudyProgress.unmark_studied(progress, phrase_id)
    if updated is not progress:
        store.write_progress(updated)
    click.echo(f"✓ {phrase_id} not studied")


@cli.command()
@click.option('--yes', is_flag=True, help='Skip the confirmation prompt')
@click.pass_context
def clear(ctx, yes: bool):
    """Clear studied state for all phrases"""
    store = _store(ctx)
    progress = store.read_progress()
    if not progress:
        click.echo("Nothing to clear")
        return
    if not yes and not click.confirm('Clear studied state for all items?'):
        click.echo("Aborted")
        return

    store.write_progress(StudyProgress.clear_all(progress))
    click.echo("✓ All studied data cleared")


@cli.command()
@click.pass_context
def stats(ctx):
    """Show phrase and progress counts"""
    store = _store(ctx)
    phrases, progress, result = store.load_session()
    duplicates = Deduplicator.find_duplicates(phrases)

    click.echo(f"Phrases: {len(phrases)}")
    click.echo(f"Studied: {StudyProgress.studied_count(progress)}")
    click.echo(f"Duplicate groups: {len(duplicates)}")
    if result.changed:
        click.echo("Progress was migrated to current ids")


@cli.command()
@click.pass_context
def validate(ctx):
    """Validate configuration"""
    is_valid, error = ConfigLoader.validate_config(ctx.obj['config'])
    if is_valid:
        click.echo("✓ Config valid")
    else:
        click.echo(f"✗ Config invalid: {error}")
        sys.exit(1)


@cli.command()
@click.pass_context
def serve(ctx):
    """Run the HTTP API"""
    from phrasebook_api.main import run_server

    config = ctx.obj['config']
    is_valid, error = ConfigLoader.validate_config(config)
    if not is_valid:
        _fail(error)
    run_server(config)


if __name__ == '__main__':
    cli()
