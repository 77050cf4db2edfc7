"""Command-line entrypoints for the reaction planner."""

from __future__ import annotations

import dataclasses
import json
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Any, Dict, Iterator, Optional

import requests
import typer

from reactionplanner.config import configure_logging, load_settings
from reactionplanner.errors import ReactionPlannerError
from reactionplanner.lookup import PubChemLookup, lookup_async
from reactionplanner.models import ReagentRole, ReagentType
from reactionplanner.store import LookupTarget, ReactionPlanStore

app = typer.Typer(add_completion=False, help="Plan a single reaction: amounts, limiting reagent and yield.")

MwOption = Annotated[Optional[str], typer.Option("--mw", help="Molecular weight (g/mol).")]
CasOption = Annotated[Optional[str], typer.Option("--cas", help="CAS number.")]
SmilesOption = Annotated[Optional[str], typer.Option("--smiles", help="SMILES string.")]
NameOption = Annotated[Optional[str], typer.Option("--name", help="Compound name.")]


def _given(**values: Any) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


@contextmanager
def _store() -> Iterator[ReactionPlanStore]:
    """Open the saved plan, and write any change back before exiting."""
    settings = load_settings()
    try:
        store = ReactionPlanStore.open(settings)
    except OSError as exc:
        typer.echo(f"Error: cannot open {settings.database}: {exc}", err=True)
        raise typer.Exit(code=1)
    try:
        yield store
    except (ReactionPlannerError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        store.close()


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@app.callback()
def main(
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", help="Override REACTIONPLANNER_LOG_LEVEL.")
    ] = None,
) -> None:
    settings = load_settings()
    if log_level:
        settings = dataclasses.replace(settings, log_level=log_level.upper())
    configure_logging(settings)


@app.command()
def show(
    table: Annotated[bool, typer.Option("--table", help="Print a summary table instead of JSON.")] = False,
) -> None:
    """Print every input and derived value of the current plan."""
    with _store() as store:
        snap = store.snapshot()
    if table:
        _echo_table(snap)
    else:
        _echo_json(snap)


def _echo_table(snap: Dict[str, Any]) -> None:
    sm = snap["startingMaterial"]
    rows = [("", "name", "type", "eq", "mmol", "mass (mg)", "volume (mL)")]
    rows.append(("*" if sm["isLimiting"] else "", sm["name"] or "SM", "", "", sm["mmol"], sm["mass"], ""))
    for reagent in snap["reagents"]:
        rows.append(
            (
                "*" if reagent["isLimiting"] else "",
                reagent["name"] or f"#{reagent['id']}",
                reagent["type"],
                reagent["eq"],
                reagent["mmol"],
                reagent["mass"],
                reagent["volume"],
            )
        )
    widths = [max(len(str(row[i])) for row in rows) for i in range(len(rows[0]))]
    for row in rows:
        typer.echo("  ".join(str(cell).ljust(width) for cell, width in zip(row, widths)).rstrip())

    product = snap["product"]
    conditions = snap["conditions"]
    typer.echo("")
    typer.echo(f"Theoretical yield: {product['theoreticalMass'] or '-'} mg")
    typer.echo(f"Yield: {product['percentYield'] or '-'} {product['yieldTier']}".rstrip())
    typer.echo(f"Solvent volume: {conditions['solventVolume'] or '-'} mL")
    typer.echo(f"Procedure: {conditions['progress']}")


@app.command("set-sm")
def set_sm(
    mw: MwOption = None,
    mass: Annotated[Optional[str], typer.Option(help="Mass (mg).")] = None,
    cas: CasOption = None,
    smiles: SmilesOption = None,
    name: NameOption = None,
) -> None:
    """Edit the starting material."""
    with _store() as store:
        store.update_starting_material(**_given(mw=mw, mass=mass, cas=cas, smiles=smiles, name=name))
        _echo_json(store.snapshot()["startingMaterial"])


@app.command("add-reagent")
def add_reagent(
    reagent_type: Annotated[Optional[ReagentType], typer.Option("--type", help="Reagent representation.")] = None,
    role: Annotated[ReagentRole, typer.Option(help="Role in the reaction.")] = ReagentRole.REAGENT,
    mw: MwOption = None,
    eq: Annotated[Optional[str], typer.Option(help="Equivalents relative to the starting material.")] = None,
    purity: Annotated[Optional[str], typer.Option(help="Purity (%).")] = None,
    density: Annotated[Optional[str], typer.Option(help="Density (g/mL).")] = None,
    molarity: Annotated[Optional[str], typer.Option(help="Molarity (mol/L).")] = None,
    cas: CasOption = None,
    smiles: SmilesOption = None,
    name: NameOption = None,
) -> None:
    """Append a reagent and print it."""
    with _store() as store:
        reagent = store.add_reagent(
            type=reagent_type,
            role=role,
            **_given(
                mw=mw,
                eq=eq,
                purity=purity,
                density=density,
                molarity=molarity,
                cas=cas,
                smiles=smiles,
                name=name,
            ),
        )
        _echo_json(_reagent_view(store, reagent.id))


@app.command("set-reagent")
def set_reagent(
    reagent_id: Annotated[int, typer.Argument(help="Reagent id.")],
    role: Annotated[Optional[ReagentRole], typer.Option(help="Role in the reaction.")] = None,
    mw: MwOption = None,
    eq: Annotated[Optional[str], typer.Option(help="Equivalents.")] = None,
    purity: Annotated[Optional[str], typer.Option(help="Purity (%).")] = None,
    density: Annotated[Optional[str], typer.Option(help="Density (g/mL).")] = None,
    molarity: Annotated[Optional[str], typer.Option(help="Molarity (mol/L).")] = None,
    cas: CasOption = None,
    smiles: SmilesOption = None,
    name: NameOption = None,
) -> None:
    """Edit a reagent."""
    with _store() as store:
        store.update_reagent(
            reagent_id,
            role=role,
            **_given(
                mw=mw,
                eq=eq,
                purity=purity,
                density=density,
                molarity=molarity,
                cas=cas,
                smiles=smiles,
                name=name,
            ),
        )
        _echo_json(_reagent_view(store, reagent_id))


@app.command("set-type")
def set_type(
    reagent_id: Annotated[int, typer.Argument(help="Reagent id.")],
    reagent_type: Annotated[ReagentType, typer.Argument(help="New representation.")],
) -> None:
    """Switch a reagent to another representation."""
    with _store() as store:
        store.set_reagent_type(reagent_id, reagent_type)
        _echo_json(_reagent_view(store, reagent_id))


@app.command("remove-reagent")
def remove_reagent(reagent_id: Annotated[int, typer.Argument(help="Reagent id.")]) -> None:
    """Delete a reagent."""
    with _store() as store:
        store.remove_reagent(reagent_id)


@app.command("set-product")
def set_product(
    mw: MwOption = None,
    actual: Annotated[Optional[str], typer.Option("--actual", help="Isolated mass (mg).")] = None,
    cas: CasOption = None,
    smiles: SmilesOption = None,
    name: NameOption = None,
) -> None:
    """Edit the product."""
    with _store() as store:
        store.update_product(**_given(mw=mw, actual_mass=actual, cas=cas, smiles=smiles, name=name))
        _echo_json(store.snapshot()["product"])


@app.command("set-conditions")
def set_conditions(
    solvent: Annotated[Optional[str], typer.Option(help="Solvent name.")] = None,
    solvent_cas: Annotated[Optional[str], typer.Option(help="Solvent CAS number.")] = None,
    solvent_bp: Annotated[Optional[str], typer.Option(help="Solvent boiling point.")] = None,
    conc: Annotated[Optional[str], typer.Option(help="Target concentration (mol/L).")] = None,
    temperature: Annotated[Optional[str], typer.Option(help="Reaction temperature.")] = None,
    time: Annotated[Optional[str], typer.Option(help="Reaction time.")] = None,
) -> None:
    """Edit solvent and reaction conditions."""
    with _store() as store:
        store.update_conditions(
            **_given(
                solvent_name=solvent,
                solvent_cas=solvent_cas,
                solvent_bp=solvent_bp,
                solvent_conc=conc,
                temperature=temperature,
                time=time,
            )
        )
        conditions = store.snapshot()["conditions"]
        conditions.pop("steps")
        _echo_json(conditions)


@app.command("add-step")
def add_step(text: Annotated[str, typer.Argument(help="Step description.")]) -> None:
    """Append a procedure step."""
    with _store() as store:
        step = store.add_step(text)
        if step is None:
            typer.echo("Error: a step needs some text", err=True)
            raise typer.Exit(code=1)
        typer.echo(step.id)


@app.command("toggle-step")
def toggle_step(step_id: Annotated[str, typer.Argument(help="Step id.")]) -> None:
    """Mark a step done, or not done."""
    with _store() as store:
        store.toggle_step(step_id)
        typer.echo(store.plan.conditions.progress)


@app.command()
def observe(
    step_id: Annotated[str, typer.Argument(help="Step id.")],
    observation: Annotated[str, typer.Argument(help="What was observed.")],
) -> None:
    """Record an observation against a step."""
    with _store() as store:
        store.set_observation(step_id, observation)


@app.command("remove-step")
def remove_step(step_id: Annotated[str, typer.Argument(help="Step id.")]) -> None:
    """Delete a procedure step."""
    with _store() as store:
        store.remove_step(step_id)
        typer.echo(store.plan.conditions.progress)


@app.command()
def save(path: Annotated[Path, typer.Argument(help="Destination .json file.")]) -> None:
    """Export the plan to a JSON file."""
    with _store() as store:
        written = store.export_plan(path)
        typer.echo(f"Saved plan to {written}")


@app.command()
def load(path: Annotated[Path, typer.Argument(help="A .json file written by 'save'.", exists=True, dir_okay=False)]) -> None:
    """Replace the plan with one read from a JSON file."""
    with _store() as store:
        store.import_plan(path)
        typer.echo(f"Loaded plan from {path}")


@app.command()
def clear(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
) -> None:
    """Delete every entry and the saved copy."""
    with _store() as store:
        cleared = store.clear(lambda: yes or typer.confirm("Clear all data? This cannot be undone."))
        typer.echo("Plan cleared." if cleared else "Nothing changed.")


@app.command()
def fetch(
    target: Annotated[LookupTarget, typer.Argument(help="Entity to fill.")],
    identifier: Annotated[str, typer.Argument(help="CAS number or compound name.")],
    reagent_id: Annotated[Optional[int], typer.Option("--reagent", help="Reagent id when TARGET is reagent.")] = None,
) -> None:
    """Fill MW, SMILES and name from PubChem."""
    settings = load_settings()
    client = PubChemLookup(settings.pubchem_url, timeout=settings.lookup_timeout)
    with _store() as store:
        if target is LookupTarget.REAGENT:
            if reagent_id is None:
                raise ValueError("--reagent is required when TARGET is reagent")
            store.reagent(reagent_id)
        try:
            info = lookup_async(client, identifier).result()
        except requests.RequestException as exc:
            typer.echo(f"Error: lookup failed: {exc}", err=True)
            raise typer.Exit(code=1)
        for warning in store.apply_lookup(target, info, reagent_id=reagent_id):
            typer.echo(f"Warning: {warning}", err=True)
        _echo_json(_target_view(store, target, reagent_id))


def _reagent_view(store: ReactionPlanStore, reagent_id: int) -> dict[str, Any]:
    for view in store.snapshot()["reagents"]:
        if view["id"] == reagent_id:
            return view
    return {}


def _target_view(store: ReactionPlanStore, target: LookupTarget, reagent_id: Optional[int]) -> Any:
    snap = store.snapshot()
    if target is LookupTarget.STARTING_MATERIAL:
        return snap["startingMaterial"]
    if target is LookupTarget.PRODUCT:
        return snap["product"]
    if target is LookupTarget.SOLVENT:
        return {key: snap["conditions"][key] for key in ("solventName", "solventCAS", "solventBP")}
    return _reagent_view(store, reagent_id)
