"""gotestlooplint CLI - Main entry point and command registration hub."""
# ruff: noqa: E402 - Intentional lazy loading: commands imported after cli group definition

import click

from gotestlooplint import __version__


@click.group()
@click.version_option(version=__version__, prog_name="gotestlooplint")
@click.help_option("-h", "--help")
@click.option("-v", "--verbose", is_flag=True, help="Log progress and debug details to stderr")
def cli(verbose):
    """Find Go loop variables captured by parallel subtests and Ginkgo It closures.

    Quick Start:
      gotestlooplint check ./...          # Every package below the current directory
      gotestlooplint check pkg/foo        # One package directory
      gotestlooplint explain              # What the rule reports and how to fix it

    Configuration:
      .gotestlooplint.json in the current directory, or
      GOTESTLOOPLINT_<SECTION>_<KEY> environment variables.
    """
    if verbose:
        from gotestlooplint.utils.logging import set_level

        set_level("DEBUG")


from gotestlooplint.commands.check import check
from gotestlooplint.commands.explain import explain

cli.add_command(check)
cli.add_command(explain)


def main():
    """Main entry point for console script."""
    cli()


if __name__ == "__main__":
    main()
