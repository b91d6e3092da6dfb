import argparse
import json
import logging
import math
import sys
from pathlib import Path

if __package__ in (None, ""):
    sys.path.append(str(Path(__file__).resolve().parent.parent))

import uvicorn
from fastapi import FastAPI
from rich.console import Console
from rich.table import Table

from payslip_app.api import install_error_handlers
from payslip_app.api import router as api_router
from payslip_app.config import get_settings
from payslip_app.core import EisType, EpfRate, SocsoType, calculate_deductions, net_income, total_earnings
from payslip_app.lifespan import build_application_lifespan
from payslip_app.printout import format_amount
from payslip_app.ui import portal_router
from payslip_app.ui import router as ui_router

logger = logging.getLogger("payslip_app")


def _announce_startup(app: FastAPI) -> None:
    settings = get_settings()
    logger.info(
        "Payslip generator ready; base_url=%s analytics=%s version=%s",
        settings.base_url,
        settings.enable_analytics,
        settings.build_version,
    )


app = FastAPI(
    title="Malaysian Payslip Generator",
    description="Payslip generation with EPF, SOCSO, EIS, PCB and HRDF deductions.",
    version="1.0.0",
    lifespan=build_application_lifespan("payslip", startup_hook=_announce_startup),
)
install_error_handlers(app)
app.include_router(api_router)
app.include_router(portal_router)
app.include_router(ui_router)


@app.get("/health")
def health():
    context = getattr(app.state, "context", None)
    settings = context.settings if context is not None else get_settings()
    return {
        "status": "ok",
        "build": {
            "version": settings.build_version,
            "sha": settings.build_sha,
            "env": settings.environment,
            "store": settings.store_backend,
        },
        "default_api_key_ready": bool(context and context.default_api_key),
    }


CALC_ROWS = (
    ("PCB", "pcbDeduction"),
    ("EPF (employee)", "epfEmployeeDeduction"),
    ("SOCSO (employee)", "socsoEmployee"),
    ("EIS (employee)", "eisEmployee"),
    ("EPF (employer)", "epfEmployer"),
    ("SOCSO (employer)", "socsoEmployer"),
    ("EIS (employer)", "eisEmployer"),
    ("HRDF", "hrdf"),
)


def _run_calc(args: argparse.Namespace, console: Console) -> int:
    if not all(math.isfinite(amount) and amount >= 0 for amount in (args.salary, args.bonus)):
        console.print("[red]Salary and bonus must be finite amounts of zero or more.[/red]")
        return 2
    result = calculate_deductions(args.salary, args.bonus, args.epf, args.socso, args.eis)
    fields = result.as_fields()
    summary = {
        "totalEarnings": total_earnings(args.salary, args.bonus),
        "totalDeductions": result.employee_total,
        "netIncome": net_income(
            args.salary,
            args.bonus,
            result.pcb_deduction,
            result.epf_employee_deduction,
            result.socso_employee,
            result.eis_employee,
        ),
    }
    if args.json:
        payload = {**result.to_payload(), **{name: float(value) for name, value in summary.items()}}
        console.print_json(json.dumps(payload))
        return 0

    table = Table(title=f"Deductions for RM{format_amount(args.salary)} salary", expand=False)
    table.add_column("Item")
    table.add_column("RM", justify="right")
    for label, name in CALC_ROWS:
        table.add_row(label, format_amount(fields[name]))
    table.add_section()
    table.add_row("Total earnings", format_amount(summary["totalEarnings"]))
    table.add_row("Total deductions", format_amount(summary["totalDeductions"]))
    table.add_row("Net income", format_amount(summary["netIncome"]), style="bold")
    console.print(table)
    return 0


def _run_server(args: argparse.Namespace) -> int:
    uvicorn.run("payslip_app.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="payslip",
        description="Malaysian payslip deduction calculator and web server.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    calc = subparsers.add_parser("calc", help="Print the statutory deductions for a salary.")
    calc.add_argument("--salary", type=float, required=True, help="Monthly basic salary in RM.")
    calc.add_argument("--bonus", type=float, default=0.0, help="Bonus paid this month in RM.")
    calc.add_argument(
        "--epf",
        choices=[rate.value for rate in EpfRate],
        default=EpfRate.ELEVEN.value,
        help="Employee EPF rate (default: 11%%).",
    )
    calc.add_argument(
        "--socso",
        choices=[kind.value for kind in SocsoType],
        default=SocsoType.BOTH.value,
        help="SOCSO category (default: both).",
    )
    calc.add_argument(
        "--eis",
        choices=[kind.value for kind in EisType],
        default=EisType.AUTO.value,
        help="EIS coverage (default: auto).",
    )
    calc.add_argument("--json", action="store_true", help="Emit JSON instead of a table.")

    serve = subparsers.add_parser("serve", help="Run the web application with uvicorn.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.command == "serve":
        return _run_server(args)
    return _run_calc(args, Console())


if __name__ == "__main__":
    sys.exit(main())
