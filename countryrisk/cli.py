"""
countryrisk Command Line Interface (CLI)
========================================

Interactive calibration testbed, run like:

    python -m countryrisk.cli --results "country_risk.json" [--table "mastertable.xlsx"] [--emdat "emdat.xlsx"]

It demonstrates:
- Argument parsing (argparse)
- A REPL loop (Read-Eval-Print Loop) for commands
- Mapping user commands to session methods (calibrate, economic loss, plots, report)

The CLI does NOT modify the results file. It works on in-memory results
until you `save` them.
"""

from __future__ import annotations
import argparse, logging, shlex
from typing import Optional
from .config import RiskConfig
from .economic_loss import failed
from .errors import MissingArgument
from .loader import load_emdat_xlsx, load_results_json
from .session import CalibrationSession

HELP = """
Commands:
  help
  list                                  (countries and hazards with their indices)
  undo
  redo

  calibrate <country_i> <hazard_i> [cagr] [plot]
                                        (example: calibrate 1 0 0.02 1)
                                        (plots are saved to ./dfc_plots, or $COUNTRYRISK_PLOT_DIR)
  econ                                  (economic loss for all countries; applies to current results)
  factor "<Country>"                    (example: factor "Costa Rica")

  dfc <country_i> <hazard_i> "<out.png>"
  report "<out.docx>"
  save "<out.json>"
  quit

Indices are 0-based, as shown by `list`.
"""


def _ask_table_path(default_path: str) -> Optional[str]:
    """Interactive fallback when no indicator table can be found."""
    print(f"Indicator table not found ({default_path}).")
    try:
        picked = input("Path to the economic indicator table (empty to cancel): ").strip()
    except EOFError:
        return None
    return picked or None


def main():
    """Entry point for the countryrisk CLI.

    1) Load results (and optionally EM-DAT records)
    2) Start an interactive REPL
    """
    ap = argparse.ArgumentParser()
    ap.add_argument("--results", required=True, help="Path to country risk results (JSON)")
    ap.add_argument("--table", help="Path to the economic indicator table (xls/xlsx/csv)")
    ap.add_argument("--emdat", help="Path to an EM-DAT excel export for historic comparison")
    ap.add_argument("--verbose", action="store_true", help="Log calculation details")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    print("Loading results...")
    session = CalibrationSession(
        results=load_results_json(args.results),
        config=RiskConfig.from_env(),
        table_path=args.table,
        prompt=_ask_table_path,
    )
    if args.emdat:
        session.emdat_events = load_emdat_xlsx(args.emdat)
        print(f"Loaded {len(session.emdat_events)} EM-DAT events.")

    print(f"Loaded {len(session.results)} countries. Type 'help' for commands.")
    while True:
        try:
            line = input("countryrisk> ")
            # Keep a lightweight log of commands for the report (reproducibility).
            stripped = line.strip()
            if stripped:
                cmd0 = stripped.split()[0].lower()
                if cmd0 not in ("help", "list", "factor", "quit"):
                    session.command_log.append(stripped)
        except EOFError:
            break
        if not line:
            continue
        if line.lower() in ("quit", "exit"):
            break
        try:
            handle(session, line)
        except Exception as e:
            print(f"Error: {e}")


def _need(parts, n: int, usage: str) -> None:
    if len(parts) < n + 1:
        raise MissingArgument(f"usage: {usage}")


def handle(session: CalibrationSession, line: str) -> None:
    """Handle one CLI command line."""
    parts = shlex.split(line)
    cmd = parts[0].lower()

    if cmd == "help":
        print(HELP)
        return

    if cmd == "list":
        for i, r in enumerate(session.results):
            print(f"[{i}] {r.country_name}" + (f" ({r.iso3})" if r.iso3 else ""))
            for j, h in enumerate(r.hazards):
                if h.eds is None or h.eds.is_empty:
                    print(f"    [{j}] {h.peril_id}: no damage set")
                else:
                    print(f"    [{j}] {h.peril_id}: {len(h.eds)} events, EAD={h.eds.expected_annual_damage:,.0f}")
        return

    if cmd == "undo":
        print("Undone." if session.undo() else "Nothing to undo.")
        return

    if cmd == "redo":
        print("Redone." if session.redo() else "Nothing to redo.")
        return

    if cmd == "calibrate":
        _need(parts, 2, "calibrate <country_i> <hazard_i> [cagr] [plot]")
        c, h = int(parts[1]), int(parts[2])
        cagr = float(parts[3]) if len(parts) >= 4 else None
        show_plot = int(parts[4]) if len(parts) >= 5 else 0
        session.calibrate(c, h, cagr, show_plot)
        eds = session.results[c].hazards[h].eds
        print(f"Recalculated {session.results[c].country_name} {session.results[c].hazards[h].peril_id}: "
              f"EAD={eds.expected_annual_damage:,.0f}")
        return

    if cmd == "econ":
        outcomes = session.economic_loss()
        for o in outcomes:
            print(f"{o.country}: {'ok' if o.ok else 'FAILED - ' + str(o.error)}")
        print(f"{len(outcomes) - len(failed(outcomes))} of {len(outcomes)} countries adjusted.")
        return

    if cmd == "factor":
        _need(parts, 1, "factor \"<Country>\"")
        f = session.factor(parts[1])
        print(f"{f.country}: financial_strength={f.financial_strength:.3f} "
              f"BI_and_supply_chain_risk={f.bi_and_supply_chain_risk:.3f} "
              f"natural_hazard_economic_exposure={f.natural_hazard_economic_exposure:.3f} "
              f"disaster_resilience={f.disaster_resilience:.3f} -> country_damage_factor={f.value:.3f}")
        return

    if cmd == "dfc":
        _need(parts, 3, "dfc <country_i> <hazard_i> \"<out.png>\"")
        c, h, out_path = int(parts[1]), int(parts[2]), parts[3]
        print(f"DFC plot written to {session.dfc(c, h, out_path)}")
        return

    if cmd == "report":
        _need(parts, 1, "report \"<out.docx>\"")
        print(f"Report written to {session.report(parts[1])}")
        return

    if cmd == "save":
        _need(parts, 1, "save \"<out.json>\"")
        session.save(parts[1])
        print(f"Results saved to {parts[1]}")
        return

    print("Unknown command. Type 'help'.")


if __name__ == "__main__":
    main()
