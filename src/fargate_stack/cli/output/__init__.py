"""Output formatting for fstack commands.

Usage:
    from fargate_stack.cli.output import OutputFormat, get_formatter

    formatter = get_formatter(OutputFormat.TABLE, console)
    formatter.format_plan(plan)
"""

from fargate_stack.cli.output.formatters import (
    OutputFormat,
    OutputFormatter,
    TemplateFormat,
    get_formatter,
    render_template,
)

__all__ = [
    "OutputFormat",
    "OutputFormatter",
    "TemplateFormat",
    "get_formatter",
    "render_template",
]
