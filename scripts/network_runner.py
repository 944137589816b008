"""Local runner for attaching network attributes to a flowline table"""

import argparse

from pydantic import ValidationError

from hydrofabric_network import NetworkRunConfig
from hydrofabric_network.logs import setup_logging
from hydrofabric_network.pipeline.network_attributes import (
    compute_network_attributes,
    read_flowlines,
    write_network_attributes,
)

logger = setup_logging()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the network-attributes CLI.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command line arguments, by default sys.argv[1:]

    Returns
    -------
    int
        Exit code: 0 for success, 1 for failure.
    """
    parser = argparse.ArgumentParser(
        description="Compute drainage area, arbolate sum, terminals and path length"
    )
    parser.add_argument("--config", required=True, help="Config file")
    parser.add_argument(
        "--input", required=False, help="Flowline table, overrides input_path in the config"
    )
    parser.add_argument(
        "--output", required=False, help="Output file, overrides output_file_path in the config"
    )
    args = parser.parse_args(argv)

    try:
        config = NetworkRunConfig.from_yaml(args.config)
    except ValidationError as e:
        print("Configuration validation failed:")
        for error in e.errors():
            print(f"  {error['loc']}: {error['msg']}")
        return 1
    except FileNotFoundError:
        logger.error(f"Config file not found: {args.config}")
        return 1

    overrides = {}
    if args.input:
        overrides["input_path"] = args.input
    if args.output:
        overrides["output_file_path"] = args.output
    if overrides:
        config = NetworkRunConfig(**{**config.model_dump(), **overrides})

    try:
        flowlines = read_flowlines(config.input_path)
    except FileNotFoundError:
        logger.error(f"Flowline table not found: {config.input_path}")
        return 1
    logger.info(f"Read {len(flowlines)} flowlines from {config.input_path}")

    try:
        attributed = compute_network_attributes(flowlines, config)
    except ValueError as e:
        logger.error(f"Network attributes failed: {e}")
        return 1

    write_network_attributes(attributed, config.output_file_path)

    print("\n" + "=" * 60)
    print("Network attributes completed")
    print("=" * 60)
    print(f"  flowlines: {len(attributed)}")
    print(f"  terminals: {attributed['terminalid'].nunique()}")
    print(f"  output:    {config.output_file_path}")
    print("=" * 60)

    return 0


if __name__ == "__main__":
    exit(main())
