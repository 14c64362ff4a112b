from __future__ import annotations

import dataclasses
import json
import logging
import os
from typing import List, Optional, Tuple

import typer

from .config import CalculatorSettings
from .data_sources import load_tax_index
from .decision import decide, default_params
from .log import setup_logging
from .pricing import price_transaction
from .schemas import LineItem, SpecialApr, TransactionSnapshot, parse_number
from .tax import TaxResolver

app = typer.Typer(help="Out-the-door price and finance vs. cash-down calculator.")


def _default_tax_table() -> Optional[str]:
    return os.environ.get("OTD_TAX_TABLE")


def _default_config() -> Optional[str]:
    return os.environ.get("OTD_CONFIG")


def _money(amount: float) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.0f}"


def _split_pair(raw: str, option: str) -> Tuple[str, Optional[str]]:
    key, sep, value = raw.partition("=")
    if not key:
        raise typer.BadParameter(f"expected KEY[=VALUE], got {raw!r}", param_hint=option)
    return key.strip(), value if sep else None


def _line_items(config: CalculatorSettings, raw_items: List[str], kind: str) -> List[LineItem]:
    lookup = config.addon if kind == "addon" else config.discount
    items = []
    for raw in raw_items:
        item_id, amount = _split_pair(raw, f"--{kind}")
        try:
            items.append(lookup(item_id, None if amount is None else parse_number(amount)))
        except KeyError as exc:
            raise typer.BadParameter(str(exc.args[0]), param_hint=f"--{kind}") from exc
    return items


def _special_aprs(raw_items: List[str]) -> List[SpecialApr]:
    specials = []
    for raw in raw_items:
        term, rate = _split_pair(raw, "--special-apr")
        if rate is None:
            raise typer.BadParameter(f"expected TERM=RATE, got {raw!r}", param_hint="--special-apr")
        specials.append(SpecialApr(term=int(parse_number(term)), rate=parse_number(rate)))
    return specials


def _build(
    config_path: Optional[str],
    tax_table: Optional[str],
    verbose: bool,
) -> Tuple[CalculatorSettings, TaxResolver]:
    setup_logging(logging.DEBUG if verbose else logging.WARNING)
    config = CalculatorSettings.load(config_path)
    resolver = TaxResolver(load_tax_index(tax_table, default_rate=config.default_tax_rate))
    return config, resolver


def _snapshot(
    config: CalculatorSettings,
    *,
    price: str,
    zip_code: str,
    trade_value: str,
    trade_owed: str,
    addon: List[str],
    discount: List[str],
    credit_tier: str,
    special_apr: List[str],
    down_payment: str,
    term: int,
) -> TransactionSnapshot:
    if credit_tier not in config.credit_tiers:
        raise typer.BadParameter(
            f"choose one of {', '.join(config.credit_tiers)}", param_hint="--credit-tier"
        )
    specials = _special_aprs(special_apr)
    if term not in config.loan_terms and all(s.term != term for s in specials):
        raise typer.BadParameter(
            f"{term} is not one of {', '.join(map(str, config.loan_terms))} "
            "and has no --special-apr",
            param_hint="--term",
        )
    try:
        return TransactionSnapshot.from_inputs(
            vehicle_price=price,
            zip_code=zip_code,
            trade_value=trade_value,
            trade_owed=trade_owed,
            down_payment=down_payment,
            addons=_line_items(config, addon, "addon"),
            discounts=_line_items(config, discount, "discount"),
            credit_tier=credit_tier,
            special_aprs=specials,
            selected_term=term,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


TAX_TABLE_OPTION = typer.Option(
    default_factory=_default_tax_table,
    help="Sales tax lookup JSON path or URL (env OTD_TAX_TABLE).",
)
CONFIG_OPTION = typer.Option(
    default_factory=_default_config,
    help="Calculator YAML config (env OTD_CONFIG).",
)


@app.command()
def tax(
    zip_code: str = typer.Argument(..., help="5-digit Illinois ZIP code."),
    config_path: Optional[str] = CONFIG_OPTION,
    tax_table: Optional[str] = TAX_TABLE_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Look up the sales tax rate for a ZIP code."""
    _, resolver = _build(config_path, tax_table, verbose)
    result = resolver.resolve(zip_code)
    estimate = " (estimate)" if result.is_estimate else ""
    typer.echo(f"{result.location}: {result.rate * 100:.2f}%{estimate}")


@app.command()
def quote(
    price: str = typer.Option("0", help="Vehicle price."),
    zip_code: str = typer.Option("", "--zip", help="Buyer ZIP code."),
    trade_value: str = typer.Option("0", help="Trade-in value."),
    trade_owed: str = typer.Option("0", help="Amount still owed on the trade."),
    addon: List[str] = typer.Option([], help="Add-on product ID[=AMOUNT]; repeatable."),
    discount: List[str] = typer.Option([], help="Discount ID[=AMOUNT]; repeatable."),
    credit_tier: str = typer.Option("excellent", help="Credit tier key."),
    special_apr: List[str] = typer.Option([], help="Promotional APR TERM=RATE; repeatable."),
    down_payment: str = typer.Option("0", help="Cash down."),
    term: int = typer.Option(60, help="Selected loan term in months."),
    as_json: bool = typer.Option(False, "--json", help="Dump the full result as JSON."),
    config_path: Optional[str] = CONFIG_OPTION,
    tax_table: Optional[str] = TAX_TABLE_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Compute the out-the-door price and the payment table."""
    config, resolver = _build(config_path, tax_table, verbose)
    tx = _snapshot(
        config,
        price=price,
        zip_code=zip_code,
        trade_value=trade_value,
        trade_owed=trade_owed,
        addon=addon,
        discount=discount,
        credit_tier=credit_tier,
        special_apr=special_apr,
        down_payment=down_payment,
        term=term,
    )
    tax_result = resolver.resolve(tx.zip_code)
    result = price_transaction(tx, tax_result, config)

    if as_json:
        typer.echo(json.dumps(dataclasses.asdict(result), indent=2))
        return

    typer.echo(f"Tax location: {tax_result.location} ({tax_result.rate * 100:.2f}%)")
    typer.echo(f"Selling price: {_money(result.selling_price)}")
    typer.echo(f"Taxable amount: {_money(result.taxable_amount)}")
    typer.echo(f"Sales tax: {_money(result.sales_tax)}")
    for fee in result.fees:
        typer.echo(f"  {fee.name}: {_money(fee.amount)}")
    if result.trade_equity:
        typer.echo(f"Trade equity: {_money(result.trade_equity)}")
    typer.echo(f"Out-the-door price: {_money(result.out_the_door)}")
    typer.echo(f"Amount to finance: {_money(result.amount_to_finance)}")
    typer.echo("")
    for row in result.payments.values():
        marker = " *" if row.is_special else ""
        selected = " <" if row.term == tx.selected_term else ""
        typer.echo(
            f"{row.term:>3} mo  {row.apr:5.2f}%{marker:2}  "
            f"{_money(row.payment)}/mo  interest {_money(row.total_interest)}{selected}"
        )


@app.command("decide")
def decide_command(
    price: str = typer.Option("0", help="Vehicle price."),
    zip_code: str = typer.Option("", "--zip", help="Buyer ZIP code."),
    trade_value: str = typer.Option("0", help="Trade-in value."),
    trade_owed: str = typer.Option("0", help="Amount still owed on the trade."),
    addon: List[str] = typer.Option([], help="Add-on product ID[=AMOUNT]; repeatable."),
    discount: List[str] = typer.Option([], help="Discount ID[=AMOUNT]; repeatable."),
    credit_tier: str = typer.Option("excellent", help="Credit tier key."),
    special_apr: List[str] = typer.Option([], help="Promotional APR TERM=RATE; repeatable."),
    down_payment: str = typer.Option("0", help="Cash down."),
    term: int = typer.Option(60, help="Loan term in months."),
    investment_return: Optional[float] = typer.Option(
        None, help="Annual investment return, e.g. 0.07 for 7%."
    ),
    gains_tax_rate: Optional[float] = typer.Option(
        None, help="Capital gains tax rate, e.g. 0.15."
    ),
    residual_pct: Optional[float] = typer.Option(
        None, help="Resale value at end of term as a fraction of price."
    ),
    as_json: bool = typer.Option(False, "--json", help="Dump the full result as JSON."),
    config_path: Optional[str] = CONFIG_OPTION,
    tax_table: Optional[str] = TAX_TABLE_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """
    Compare financing (and investing the cash) against paying more down.
    """
    config, resolver = _build(config_path, tax_table, verbose)
    tx = _snapshot(
        config,
        price=price,
        zip_code=zip_code,
        trade_value=trade_value,
        trade_owed=trade_owed,
        addon=addon,
        discount=discount,
        credit_tier=credit_tier,
        special_apr=special_apr,
        down_payment=down_payment,
        term=term,
    )
    try:
        params = default_params(
            config,
            term,
            investment_return=investment_return,
            capital_gains_tax_rate=gains_tax_rate,
            residual_pct=residual_pct,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    result = decide(tx, params, resolver.resolve(tx.zip_code), config)

    if as_json:
        payload = dataclasses.asdict(result)
        payload["verdict"] = result.verdict.value if result.verdict else None
        payload["finance_advantage"] = result.finance_advantage
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(f"Out-the-door price: {_money(result.otd.out_the_door)}")
    typer.echo(
        f"Down payment: {_money(result.down_payment)} "
        f"({result.down_payment_pct * 100:.0f}%), financing {_money(result.amount_financed)}"
    )
    typer.echo(f"@ {result.apr:.2f}% APR over {result.term} months")
    typer.echo("")
    typer.echo(f"Monthly payment: {_money(result.monthly_payment)}")
    typer.echo(f"Total interest: {_money(result.total_interest)}")
    typer.echo(f"Maintenance: {_money(result.total_maintenance)}")
    typer.echo(f"Total cash out: {_money(result.total_cash_out)}")
    typer.echo("")
    typer.echo(f"Resale value: {_money(result.residual_value)}")
    typer.echo(f"Investment value after tax: {_money(result.investment_value_net)}")
    typer.echo(f"Ending assets: {_money(result.ending_assets)}")
    typer.echo(f"Net position: {_money(result.net_position)}")

    if result.verdict is None:
        return
    typer.echo("")
    advantage = result.finance_advantage
    if advantage >= 0:
        typer.echo(f"Financing ahead by {_money(advantage)}: investment profit outpaces loan interest.")
    else:
        typer.echo(f"Paying more down would save {_money(-advantage)}: loan interest exceeds investment profit.")


if __name__ == "__main__":
    app()
