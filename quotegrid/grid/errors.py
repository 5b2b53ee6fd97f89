# quotegrid/grid/errors.py
"""Exceptions raised by the grid engine."""


class GridError(Exception):
    """Base class for every error the grid engine raises."""


class AddressError(GridError, ValueError):
    """A column letter, cell or range string could not be interpreted."""


class FormulaTemplateError(GridError):
    """A formula template was applied outside the rows it was built for.

    This is a bug in the layout code, not bad user data, so it is raised
    immediately instead of emitting a formula that points at the wrong row.
    """


class LayoutError(GridError):
    """The structured input cannot be laid out (e.g. blank sheet name)."""


class ProviderError(GridError):
    """The remote data provider answered with something other than JSON."""
