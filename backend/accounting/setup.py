# accounting/setup.py
"""
Chart of accounts bootstrap (Colombian PUC, trimmed to what the
auto-entry generator and the reports need).

``setup_chart_of_accounts`` seeds the accounts as system accounts and
maps every AccountingConfig role. Automatic entries stay disabled until
an administrator turns them on.
"""

import logging

from accounts.authz import ActorContext, require
from accounting.commands import get_accounting_config, ledger_command
from accounting.exceptions import ChartAlreadyExistsError
from accounting.models import Account

logger = logging.getLogger(__name__)

A = Account.AccountType
N = Account.Nature

# (code, name, type, nature, parent code)
PUC_ACCOUNTS = [
    ("1", "Activos", A.ASSET, N.DEBIT, None),
    ("11", "Disponible", A.ASSET, N.DEBIT, "1"),
    ("1105", "Caja", A.ASSET, N.DEBIT, "11"),
    ("110505", "Caja General", A.ASSET, N.DEBIT, "1105"),
    ("1110", "Bancos", A.ASSET, N.DEBIT, "11"),
    ("111005", "Bancos Nacionales", A.ASSET, N.DEBIT, "1110"),
    ("13", "Deudores", A.ASSET, N.DEBIT, "1"),
    ("1305", "Clientes", A.ASSET, N.DEBIT, "13"),
    ("130505", "Clientes Nacionales", A.ASSET, N.DEBIT, "1305"),
    ("1355", "Anticipo de Impuestos y Contribuciones", A.ASSET, N.DEBIT, "13"),
    ("135515", "Retencion en la Fuente", A.ASSET, N.DEBIT, "1355"),
    ("135517", "Impuesto a las Ventas Retenido", A.ASSET, N.DEBIT, "1355"),
    ("14", "Inventarios", A.ASSET, N.DEBIT, "1"),
    ("1435", "Mercancias no Fabricadas por la Empresa", A.ASSET, N.DEBIT, "14"),
    ("143505", "Inventario de Mercancias", A.ASSET, N.DEBIT, "1435"),

    ("2", "Pasivos", A.LIABILITY, N.CREDIT, None),
    ("22", "Proveedores", A.LIABILITY, N.CREDIT, "2"),
    ("2205", "Proveedores Nacionales", A.LIABILITY, N.CREDIT, "22"),
    ("220505", "Proveedores Nacionales", A.LIABILITY, N.CREDIT, "2205"),
    ("23", "Cuentas por Pagar", A.LIABILITY, N.CREDIT, "2"),
    ("2365", "Retencion en la Fuente", A.LIABILITY, N.CREDIT, "23"),
    ("236540", "Compras 2.5%", A.LIABILITY, N.CREDIT, "2365"),
    ("24", "Impuestos, Gravamenes y Tasas", A.LIABILITY, N.CREDIT, "2"),
    ("2408", "Impuesto sobre las Ventas por Pagar", A.LIABILITY, N.CREDIT, "24"),
    ("240805", "IVA por Pagar 19%", A.LIABILITY, N.CREDIT, "2408"),
    ("240810", "IVA por Pagar 5%", A.LIABILITY, N.CREDIT, "2408"),
    # Deductible IVA is carried as a contra-liability under 24
    ("2412", "Impuesto sobre las Ventas Descontable", A.LIABILITY, N.DEBIT, "24"),
    ("241205", "IVA Descontable 19%", A.LIABILITY, N.DEBIT, "2412"),
    ("241210", "IVA Descontable 5%", A.LIABILITY, N.DEBIT, "2412"),
    ("25", "Obligaciones Laborales", A.LIABILITY, N.CREDIT, "2"),
    ("2505", "Salarios por Pagar", A.LIABILITY, N.CREDIT, "25"),
    ("2510", "Cesantias Consolidadas", A.LIABILITY, N.CREDIT, "25"),

    ("3", "Patrimonio", A.EQUITY, N.CREDIT, None),
    ("31", "Capital Social", A.EQUITY, N.CREDIT, "3"),
    ("3105", "Capital Suscrito y Pagado", A.EQUITY, N.CREDIT, "31"),
    ("36", "Resultados del Ejercicio", A.EQUITY, N.CREDIT, "3"),
    ("3605", "Utilidad del Ejercicio", A.EQUITY, N.CREDIT, "36"),
    ("3610", "Perdida del Ejercicio", A.EQUITY, N.DEBIT, "36"),
    ("37", "Resultados de Ejercicios Anteriores", A.EQUITY, N.CREDIT, "3"),
    ("3705", "Utilidades Acumuladas", A.EQUITY, N.CREDIT, "37"),
    ("3710", "Perdidas Acumuladas", A.EQUITY, N.DEBIT, "37"),

    ("4", "Ingresos", A.REVENUE, N.CREDIT, None),
    ("41", "Operacionales", A.REVENUE, N.CREDIT, "4"),
    ("4135", "Comercio al por Mayor y Menor", A.REVENUE, N.CREDIT, "41"),
    ("413505", "Ventas de Mercancias", A.REVENUE, N.CREDIT, "4135"),
    ("42", "No Operacionales", A.REVENUE, N.CREDIT, "4"),
    ("4295", "Diversos", A.REVENUE, N.CREDIT, "42"),
    ("429505", "Ajustes de Inventario (Sobrante)", A.REVENUE, N.CREDIT, "4295"),

    ("5", "Gastos", A.EXPENSE, N.DEBIT, None),
    ("51", "Operacionales de Administracion", A.EXPENSE, N.DEBIT, "5"),
    ("5105", "Gastos de Personal", A.EXPENSE, N.DEBIT, "51"),
    ("5115", "Arrendamientos", A.EXPENSE, N.DEBIT, "51"),
    ("5120", "Servicios", A.EXPENSE, N.DEBIT, "51"),
    ("5195", "Diversos", A.EXPENSE, N.DEBIT, "51"),
    ("519505", "Ajustes de Inventario (Faltante)", A.EXPENSE, N.DEBIT, "5195"),
    ("53", "No Operacionales", A.EXPENSE, N.DEBIT, "5"),
    ("5305", "Gastos Financieros", A.EXPENSE, N.DEBIT, "53"),

    ("6", "Costos de Venta", A.COGS, N.DEBIT, None),
    ("61", "Costo de Ventas", A.COGS, N.DEBIT, "6"),
    ("6135", "Comercio al por Mayor y Menor", A.COGS, N.DEBIT, "61"),
    ("613505", "Costo de Mercancias Vendidas", A.COGS, N.DEBIT, "6135"),
]

BANK_ACCOUNT_CODES = {"111005"}

# AccountingConfig role -> seeded account code
DEFAULT_ROLE_CODES = {
    "cash_account": "110505",
    "bank_account": "111005",
    "accounts_receivable": "130505",
    "inventory_account": "143505",
    "accounts_payable": "220505",
    "iva_payable": "240805",
    "iva_deductible": "241205",
    "revenue_account": "413505",
    "cogs_account": "613505",
    "inventory_adjustment": "519505",
    "withholding_received": "135515",
    "withholding_payable": "236540",
    "retained_earnings": "3605",
}


def seed_chart_of_accounts(company) -> dict:
    """
    Create the PUC accounts for ``company`` and map every config role.

    Parents are listed before children so each parent exists when its
    child is created. Returns {code: Account}.
    """
    if Account.objects.filter(company=company).exists():
        raise ChartAlreadyExistsError("The company already has a chart of accounts.")

    created = {}
    for code, name, account_type, nature, parent_code in PUC_ACCOUNTS:
        created[code] = Account.objects.create(
            company=company,
            code=code,
            name=name,
            account_type=account_type,
            nature=nature,
            parent=created[parent_code] if parent_code else None,
            is_system_account=True,
            is_bank_account=code in BANK_ACCOUNT_CODES,
        )

    config = get_accounting_config(company)
    for role, code in DEFAULT_ROLE_CODES.items():
        setattr(config, role, created[code])
    config.auto_generate_entries = False
    config.save()

    logger.info(
        "Chart of accounts seeded",
        extra={"company_id": company.pk, "accounts": len(created)},
    )
    return created


@ledger_command
def setup_chart_of_accounts(actor: ActorContext) -> dict:
    require(actor, "accounting.configure")
    created = seed_chart_of_accounts(actor.company)
    return {"accounts_created": len(created)}
