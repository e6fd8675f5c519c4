import click
import yaml
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .config import ConfigManager
from .connector import open_snapshot
from .etl import MetadataPipeline, OUTPUT_FORMATS
from .exceptions import SraDbEtlError
from .utils import setup_logging
from .validator import SnapshotValidator


@click.group()
@click.version_option(version=__version__, prog_name='sradb-etl')
@click.option('--verbose', '-v', is_flag=True)
@click.option('--quiet', '-q', is_flag=True)
@click.pass_context
def main(ctx, verbose, quiet):
    """SRAdb ETL CLI Tool"""
    ctx.ensure_object(dict)
    setup_logging(verbose, quiet)


@main.command()
@click.argument('study_accession', required=False)
@click.argument('output_file', required=False, type=click.Path(dir_okay=False))
@click.option('--snapshot', '-d', type=click.Path(dir_okay=False), envvar='SRADB_SNAPSHOT',
              help='SRAmetadb SQLite snapshot (env: SRADB_SNAPSHOT)')
@click.option('--config', '-c', type=click.Path(exists=True))
@click.option('--columns', help='Comma-separated attribute column names, in field order')
@click.option('--format', 'output_format', type=click.Choice(OUTPUT_FORMATS))
@click.option('--by-label', is_flag=True, help='Route attribute values by label instead of position')
@click.option('--drop-null-columns', is_flag=True, help='Drop all-null sample columns before splitting')
@click.option('--empty-as-null', is_flag=True, help='Treat empty strings as null when dropping columns')
@click.pass_context
def extract(ctx, study_accession, output_file, snapshot, config, columns, output_format,
            by_label, drop_null_columns, empty_as_null):
    """Extract run-level sample metadata for one study"""
    config_manager = ConfigManager(config)
    config_manager.set('snapshot', 'path', snapshot)
    config_manager.set('output', 'format', output_format)
    if columns:
        config_manager.set('attributes', 'columns', [c.strip() for c in columns.split(',') if c.strip()])
    config_manager.set('attributes', 'by_label', by_label or None)
    config_manager.set('cleaning', 'drop_null_columns', drop_null_columns or None)
    config_manager.set('cleaning', 'empty_as_null', empty_as_null or None)

    pipeline_config = config_manager.get_pipeline_config()
    study_accession = study_accession or pipeline_config['study_accession']
    output_file = output_file or pipeline_config['output_path']
    if not study_accession:
        raise click.UsageError("STUDY_ACCESSION is required, as an argument or study.accession in the config")
    if not output_file:
        raise click.UsageError("OUTPUT_FILE is required, as an argument or output.path in the config")

    click.echo(f"Extracting {study_accession} -> {output_file}")
    try:
        processor = MetadataPipeline(pipeline_config)
        result = processor.process(
            pipeline_config['snapshot'], study_accession, output_file,
            pipeline_config['output_format']
        )
    except (SraDbEtlError, SQLAlchemyError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    if result['runs'] == 0:
        click.echo(f"Warning: study {study_accession} not found in snapshot, wrote header only", err=True)
    click.echo(f"Success: wrote {result['rows_written']} rows for {result['samples']} samples")


@main.command()
@click.option('--snapshot', '-d', type=click.Path(dir_okay=False), envvar='SRADB_SNAPSHOT')
@click.option('--config', '-c', type=click.Path(exists=True))
@click.pass_context
def validate(ctx, snapshot, config):
    """Check that a snapshot has the tables and columns extraction reads"""
    config_manager = ConfigManager(config)
    config_manager.set('snapshot', 'path', snapshot)
    pipeline_config = config_manager.get_pipeline_config()

    validator = SnapshotValidator(pipeline_config['validation'])
    try:
        with open_snapshot(pipeline_config['snapshot']) as engine:
            is_valid, errors = validator.validate(engine)
    except SraDbEtlError as e:
        raise click.ClickException(str(e)) from e

    if is_valid:
        click.echo("Snapshot validation passed")
    else:
        click.echo(f"Validation failed with {len(errors)} errors")
        for error in errors:
            click.echo(f"  {error}")
        ctx.exit(1)


@main.command()
@click.option('--output', '-o', type=click.Path(), default='config.yaml')
def init_config(output):
    """Generate sample configuration"""
    with open(output, 'w', encoding='utf-8') as f:
        yaml.safe_dump(ConfigManager().config, f, sort_keys=False)
    click.echo(f"Configuration saved to {output}")


if __name__ == '__main__':
    main()
