from logging import getLogger

import click

from .utils import kmg_bases_to_int, parse_percentiles


logger = getLogger(__name__)


class FormatDependentOption(click.Option):
    def __init__(self, *args, **kwds):
        self.matrix_formats: list = kwds.pop("matrix_formats")

        kwds["help"] = kwds.get("help", "") + "(required if the matrix format is in {})".format(
            ",".join(self.matrix_formats)
        )
        super(FormatDependentOption, self).__init__(*args, **kwds)

    def handle_parse_result(self, ctx, opts, args):
        fmt = ctx.params.get("matrix_format", None)
        if fmt in self.matrix_formats:
            if self.name not in opts:
                raise click.UsageError("When reading {} matrices, {} is a required parameter".format(fmt, self.name))
            else:
                self.prompt = None
        return super(FormatDependentOption, self).handle_parse_result(ctx, opts, args)


class NaturalOrderGroup(click.Group):
    """Command group trying to list subcommands in the order they were added.
    """

    def list_commands(self, ctx):
        """List command names as they are in commands dict.
        """
        return self.commands.keys()


def genomic_size(ctx, param, value):
    if value is None:
        return value
    try:
        return kmg_bases_to_int(str(value))
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def percentile_list(ctx, param, value):
    try:
        return parse_percentiles(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
