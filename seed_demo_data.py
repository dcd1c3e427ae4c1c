"""
Seed demo data: demo@monbudget.sn / demo123 with accounts, three months of
transactions, current-month budgets and savings goals.
Run:  python seed_demo_data.py
"""
import sys
from datetime import timedelta
from decimal import Decimal

from monbudget.application.accounts import CreateAccountUseCase
from monbudget.application.budgets import CreateBudgetUseCase
from monbudget.application.goals import CreateGoalUseCase
from monbudget.application.transactions import CreateTransactionUseCase
from monbudget.application.users import SignupUseCase
from monbudget.auth import get_user_by_email
from monbudget.domain.periods import month_start, shift_months
from monbudget.infrastructure.db.models import Account, Category
from monbudget.infrastructure.db.session import get_session_factory
from monbudget.utils.clock import today_local
from monbudget.utils.money import format_money

DEMO_EMAIL = "demo@monbudget.sn"

db = get_session_factory()()

if get_user_by_email(db, DEMO_EMAIL):
    print(f"Demo user already exists: {DEMO_EMAIL}")
    db.close()
    sys.exit(0)

# ── user + accounts ──────────────────────────────────────────────
user = SignupUseCase(db).execute(
    email=DEMO_EMAIL,
    password="demo123",
    first_name="Amadou",
    last_name="Diop",
    phone="+221771234567",
    city="Dakar",
    profession="Développeur",
)
print(f"✓ User: {DEMO_EMAIL} / demo123 (id={user.id})")

create_account = CreateAccountUseCase(db).execute
accounts = {
    name: create_account(owner_id=user.id, name=name, bank=bank, account_type=account_type,
                         balance=Decimal(balance))
    for name, bank, account_type, balance in [
        ("BOA Sénégal", "BOA", "checking", "1250500"),
        ("Livret SGBS", "SGBS", "savings", "4375000"),
        ("Carte CBAO", "CBAO", "credit", "-160375"),
        ("Orange Money", "Orange", "mobile", "85000"),
    ]
}
print(f"✓ Accounts: {len(accounts)}")

cats = {c.name: c.id for c in db.query(Category).all()}

# ── transactions: два прошлых месяца + текущий ──────────────────
today = today_local()
current = month_start(today)
months = [shift_months(current, -2), shift_months(current, -1), current]


def day(month, d):
    return month.replace(day=min(d, today.day) if month == current else d)


rows = []
for i, month in enumerate(months):
    rows += [
        ("BOA Sénégal", "Salary", "850000", day(month, 1), "Salaire mensuel"),
        ("BOA Sénégal", "Housing", "-350000", day(month, 1), "Loyer"),
        ("BOA Sénégal", "Food", ("-85000", "-95000", "-45000")[i], day(month, 3), "Courses"),
        ("Orange Money", "Transport", ("-25000", "-30000", "-28000")[i], day(month, 5), "Carburant"),
    ]
rows += [
    ("BOA Sénégal", "Freelance", "250000", day(months[0], 5), "Projet web"),
    ("Livret SGBS", "Investments", "45000", day(months[0], 10), "Dividendes SONATEL"),
    ("BOA Sénégal", "Health", "-15000", day(months[0], 4), "Pharmacie"),
    ("Carte CBAO", "Leisure", "-35000", day(months[0], 5), "Restaurant"),
    ("BOA Sénégal", "Clothing", "-65000", day(months[0], 6), "Habits pour le travail"),
    ("Livret SGBS", "Savings", "-200000", day(months[0], 7), "Épargne mensuelle"),
    ("Carte CBAO", "Leisure", "-12000", day(months[1], 10), "Cinéma"),
]

create_tx = CreateTransactionUseCase(db).execute
for account, category, amount, tx_date, description in rows:
    create_tx(
        owner_id=user.id,
        account_id=accounts[account].id,
        category_id=cats[category],
        amount=Decimal(amount),
        tx_date=tx_date,
        description=description,
    )
print(f"✓ Transactions: {len(rows)}")

# ── budgets текущего месяца ──────────────────────────────────────
month_end = shift_months(current, 1) - timedelta(days=1)
create_budget = CreateBudgetUseCase(db).execute
for category, amount in [("Food", "120000"), ("Transport", "50000"), ("Leisure", "80000"), ("Clothing", "100000")]:
    create_budget(user.id, cats[category], Decimal(amount), "monthly", current, month_end)
print("✓ Budgets: 4")

# ── goals ────────────────────────────────────────────────────────
create_goal = CreateGoalUseCase(db).execute
for title, description, target, saved, months_ahead, category in [
    ("Voyage à Paris", "Économiser pour un voyage en famille", "2500000", "850000", 9, "Voyage"),
    ("Nouvelle voiture", "Acheter une voiture d'occasion", "8000000", "2100000", 18, "Transport"),
    ("Fonds d'urgence", "Constituer un fonds d'urgence", "5000000", "4375000", 6, "Épargne"),
    ("Formation en ligne", "Cours de développement avancé", "500000", "150000", 1, "Éducation"),
]:
    create_goal(
        owner_id=user.id,
        title=title,
        target_amount=Decimal(target),
        category=category,
        current_amount=Decimal(saved),
        deadline=shift_months(today, months_ahead),
        description=description,
    )
print("✓ Goals: 4")

total = sum((a.balance for a in db.query(Account).filter(Account.owner_id == user.id)), Decimal("0"))
print(f"\nDemo data ready! Total balance: {format_money(total)}")
db.close()
