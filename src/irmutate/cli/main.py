"""
Main CLI entry point.
"""

import click
import logging

__version__ = "0.1.0"


@click.group()
@click.version_option(version=__version__)
def main():
    """irmutate: seeded, size-bounded structural mutation of SSA IR."""
    pass


@main.command()
@click.argument("input_file", metavar="INPUT", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default="./mutants", type=click.Path(), help="Output directory")
@click.option("--count", "-n", default=100, type=int, help="Number of mutants to generate")
@click.option("--seed", default=0, type=int, help="Base seed; mutant i uses seed + i")
@click.option("--max-size", default=65536, type=int, help="Size budget for a mutant in bytes")
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False), help="Mutator config file")
@click.option("--jobs", "-j", default=1, type=int, help="Number of parallel workers (0 = auto)")
@click.option("--verify/--no-verify", default=True, help="Verify each mutant before writing it")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def mutate(input_file, output, count, seed, max_size, config_file, jobs, verify, verbose):
    """Write COUNT single-edit mutants of the module in INPUT."""
    import time
    from pathlib import Path
    from multiprocessing import Pool, cpu_count

    from irmutate.codec import parse_and_verify
    from irmutate.config import ConfigError, MutatorConfig
    from irmutate.core import Context
    from irmutate.engine.worker import generate_mutants

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    logger = logging.getLogger(__name__)

    # Build mutator
    try:
        if config_file:
            logger.info(f"Loading mutator config: {config_file}")
            config = MutatorConfig.from_config_file(Path(config_file))
        else:
            config = MutatorConfig()
        mutator = config.build()
    except ConfigError as e:
        raise click.ClickException(str(e))
    logger.info(f"Strategies: {', '.join(s.name for s in mutator.strategies)}")

    # Load input
    source = Path(input_file).read_bytes()
    if parse_and_verify(source, len(source), Context()) is None:
        raise click.ClickException(f"{input_file} is not a valid module")

    # Setup output dir
    output_path = Path(output)
    output_path.mkdir(parents=True, exist_ok=True)

    # Auto-detect jobs
    if jobs <= 0:
        jobs = cpu_count()

    start_time = time.time()

    if jobs == 1:
        logger.info(f"Generating {count} mutants...")
        successful = generate_mutants(mutator, source, output_path, range(count), seed, max_size, verify)

    else:
        # Parallel mode
        import dill

        from irmutate.engine.worker import mutate_worker

        logger.info(f"Generating {count} mutants with {jobs} workers...")

        # The operation catalog holds lambdas, which plain pickle rejects
        payload = dill.dumps(mutator)

        worker_args = []
        for i in range(jobs):
            indices = list(range(i, count, jobs))
            if indices:
                args = (
                    i,                      # worker_id
                    payload,                # mutator_payload
                    source,                 # source
                    str(output_path),       # output_path
                    indices,                # indices
                    seed,                   # base_seed
                    max_size,               # max_size
                    verify,                 # verify
                )
                worker_args.append(args)

        with Pool(processes=jobs) as pool:
            results = pool.map(mutate_worker, worker_args)
            successful = sum(results)

    elapsed = time.time() - start_time
    rate = successful / elapsed if elapsed > 0 else 0
    logger.info(f"Wrote {successful}/{count} mutants in {elapsed:.2f}s ({rate:.1f} mutants/sec)")


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def verify(files, verbose):
    """Parse and verify each module in FILES."""
    import sys
    from pathlib import Path

    from irmutate.codec import ParseError, parse_assembly
    from irmutate.core import Context, verify_module

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    logger = logging.getLogger(__name__)

    failures = 0
    for file in files:
        try:
            module = parse_assembly(Path(file).read_text(encoding="utf-8"), Context())
        except (ParseError, UnicodeDecodeError) as e:
            logger.error(f"{file}: {e}")
            failures += 1
            continue

        errors = verify_module(module)
        for error in errors:
            logger.error(f"{file}: {error}")
        if errors:
            failures += 1
        else:
            logger.info(f"{file}: OK ({len(module.functions)} functions)")

    if failures:
        logger.error(f"{failures} of {len(files)} files failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
