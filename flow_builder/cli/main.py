"""Flow Builder CLI - Main entry point."""

import sys
from typing import Optional, Tuple

import click

from .. import __version__
from ..canvas import FlowValidator, compute_layout, describe_layout
from ..exceptions import FlowBuilderError
from ..logging_config import configure_logging
from ..models import blocks_to_dicts
from ..preview import FlowSimulator, replay
from ..templates import build_template, list_templates
from .files import dump_blocks, load_flow_file
from .output import (
    console,
    print_document,
    print_entry,
    print_error,
    print_flow,
    print_info,
    print_issues,
    print_layout,
    print_levels,
    print_success,
    print_templates,
    print_variables,
    print_warning,
)


@click.group()
@click.version_option(version=__version__, prog_name="flowbuilder")
@click.option("--output", "-o", type=click.Choice(["table", "json", "yaml"]), default="table",
              help="Output format")
@click.option("--log-level", default="warning", help="Log level")
@click.pass_context
def cli(ctx: click.Context, output: str, log_level: str):
    """Flow Builder CLI - Lay out, check and preview chatbot flows.

    \b
    Examples:
      flowbuilder template real-estate-lead-generation --write bot.yaml
      flowbuilder layout bot.yaml
      flowbuilder preview bot.yaml --answer "Jane" --answer "jane@example.com"
    """
    ctx.ensure_object(dict)
    configure_logging(level=log_level, json_logs=False)
    ctx.obj["output"] = output


@cli.command("layout")
@click.argument("flow_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--write", "-w", "write_to", type=click.Path(dir_okay=False),
              help="Write the positioned blocks to a file")
@click.pass_context
def layout(ctx: click.Context, flow_file: str, write_to: Optional[str]):
    """Compute block positions for a flow file."""
    try:
        blocks = load_flow_file(flow_file)
    except FlowBuilderError as e:
        print_error(e.message)
        sys.exit(1)

    positioned = compute_layout(blocks)
    levels = describe_layout(positioned).levels

    if write_to:
        dump_blocks(positioned, write_to)
        print_success(f"Wrote {len(positioned)} blocks to {write_to}")
        return

    if ctx.obj["output"] == "table":
        print_layout(positioned, levels)
    else:
        print_document(blocks_to_dicts(positioned), ctx.obj["output"])


@cli.command("levels")
@click.argument("flow_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def levels(ctx: click.Context, flow_file: str):
    """Show the level of every block reachable from start."""
    try:
        blocks = load_flow_file(flow_file)
    except FlowBuilderError as e:
        print_error(e.message)
        sys.exit(1)

    plan = describe_layout(blocks)

    if ctx.obj["output"] != "table":
        print_document(
            {"levels": plan.levels, "branch_levels": plan.branch_levels},
            ctx.obj["output"],
        )
        return

    print_levels(plan.groups, plan.branch_levels)

    unreachable = [b.id for b in blocks if b.id not in plan.levels]
    if plan.branch_levels:
        print_info(f"Branching at levels: {', '.join(str(l) for l in plan.branch_levels)}")
    if unreachable:
        print_warning(f"Unreachable from start: {', '.join(unreachable)}")


@cli.command("validate")
@click.argument("flow_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def validate(ctx: click.Context, flow_file: str):
    """Check a flow file for structural problems."""
    try:
        blocks = load_flow_file(flow_file)
    except FlowBuilderError as e:
        print_error(e.message)
        sys.exit(1)

    result = FlowValidator().validate(blocks)
    if ctx.obj["output"] != "table":
        print_document(
            {"valid": result.valid, "issues": [i.to_dict() for i in result.issues]},
            ctx.obj["output"],
        )
    elif result.issues:
        print_issues(result.issues)

    if not result.valid:
        if ctx.obj["output"] == "table":
            print_error(f"Flow is invalid ({len(result.errors)} errors)")
        sys.exit(1)

    if ctx.obj["output"] == "table":
        print_success("Flow is valid")


@cli.command("preview")
@click.argument("flow_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--answer", "-a", "answers", multiple=True,
              help="Answer for the next question, in order (repeatable)")
@click.option("--interactive/--batch", default=True,
              help="Prompt for answers once the --answer values run out")
@click.pass_context
def preview(ctx: click.Context, flow_file: str, answers: Tuple[str, ...], interactive: bool):
    """Simulate the conversation a flow produces."""
    try:
        blocks = load_flow_file(flow_file, lenient=True)
    except FlowBuilderError as e:
        print_error(e.message)
        sys.exit(1)

    output = ctx.obj["output"]

    if not interactive:
        simulator = replay(blocks, answers)
        if output == "table":
            for entry in simulator.transcript:
                print_entry(entry)
    else:
        simulator = _run_interactive(blocks, list(answers), echo=output == "table")

    if output != "table":
        print_document(
            {**simulator.snapshot().to_dict(), "execution_path": simulator.execution_path},
            output,
        )
        return

    if simulator.collected_variables:
        print_variables(simulator.collected_variables)
    if simulator.awaiting_input:
        print_warning("Preview stopped waiting for an answer")


def _run_interactive(blocks, answers, echo: bool) -> FlowSimulator:
    simulator = FlowSimulator(blocks)
    simulator.start()
    shown = 0

    while True:
        simulator.run_until_blocked()
        if echo:
            for entry in simulator.transcript[shown:]:
                print_entry(entry)
        shown = len(simulator.transcript)

        if not simulator.awaiting_input:
            return simulator

        if answers:
            simulator.submit_answer(answers.pop(0))
            continue

        text = click.prompt("You", default="", show_default=False)
        if not simulator.submit_answer(text):
            console.print("[dim]Please type an answer[/dim]")
        # The answer was echoed by the prompt itself
        shown = len(simulator.transcript)


@cli.command("template")
@click.argument("template_id", required=False)
@click.option("--write", "-w", "write_to", type=click.Path(dir_okay=False),
              help="Write the template blocks to a file")
@click.pass_context
def template(ctx: click.Context, template_id: Optional[str], write_to: Optional[str]):
    """List templates, or show one template's blocks."""
    if template_id is None:
        if ctx.obj["output"] == "table":
            print_templates(list_templates())
        else:
            print_document(list_templates(), ctx.obj["output"])
        return

    try:
        blocks = build_template(template_id)
    except FlowBuilderError as e:
        print_error(e.message)
        sys.exit(1)

    if write_to:
        dump_blocks(blocks, write_to)
        print_success(f"Wrote template {template_id} to {write_to}")
        return

    if ctx.obj["output"] == "table":
        print_flow(blocks, title=template_id)
    else:
        print_document({"blocks": blocks_to_dicts(blocks)}, ctx.obj["output"])


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
