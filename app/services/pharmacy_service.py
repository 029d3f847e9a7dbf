from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, or_

from app.core.clinic_access import ClinicAccess
from app.core.logger import logger
from app.core.utils import next_sequence
from app.db.models import CreditAccount, CreditTransaction, InventoryBatch, Product, Sale
from app.db.models.enums import CreditTransactionType, PaymentMode
from app.schemas.pharmacy import BatchCreate, CreditAccountCreate, CreditPayment, SaleCreate, SaleItemIn

RECEIPT_WIDTH = 40
ACCOUNT_TRANSACTIONS_SHOWN = 50
ACCOUNT_SALES_SHOWN = 20


def money(amount: float) -> str:
    return f"Rs. {amount:.2f}"


def item_amount(item: SaleItemIn) -> float:
    if item.amount is not None:
        return item.amount
    return item.quantity * item.unit_price - item.discount


def _line(left: str, right: str) -> str:
    gap = max(1, RECEIPT_WIDTH - len(left) - len(right))
    return f"{left}{' ' * gap}{right}"


def generate_receipt(clinic_name: str, sale: Sale) -> str:
    """Plain-text receipt sized for a thermal printer."""
    rule = "-" * RECEIPT_WIDTH
    lines = [
        clinic_name.center(RECEIPT_WIDTH).rstrip(),
        "Tax Invoice".center(RECEIPT_WIDTH).rstrip(),
        rule,
        _line("Invoice #:", sale.sale_number),
        _line("Date:", sale.created_at.strftime("%b %d, %Y %I:%M %p")),
        rule,
    ]
    for item in sale.items:
        lines.append(item["product_name"])
        if item.get("batch_number"):
            lines.append(f"  Batch: {item['batch_number']}")
        lines.append(_line(f"  {item['quantity']} x {money(item['unit_price'])}", money(item["amount"])))
    lines += [
        rule,
        _line("Subtotal:", money(sale.subtotal)),
        _line("Discount:", f"- {money(sale.discount)}"),
        _line("Tax:", money(sale.tax_amount)),
        _line("Total:", money(sale.total)),
    ]
    if sale.is_credit:
        lines.append(_line("Payment:", "CREDIT"))
        lines.append(_line("Balance Due:", money(sale.amount_due)))
    else:
        lines.append(_line("Paid:", money(sale.amount_paid)))
        change = max(0.0, sale.amount_paid - sale.total)
        if change > 0:
            lines.append(_line("Change:", money(change)))
    lines += [rule, "Thank you for your purchase!", "Get well soon!"]
    return "\n".join(lines)


def credit_account_summary(account: CreditAccount) -> dict:
    return {
        "id": str(account.id),
        "customer_name": account.customer_name,
        "phone": account.phone,
        "address": account.address,
        "credit_limit": account.credit_limit,
        "current_balance": account.current_balance,
        "is_active": account.is_active,
        "created_at": account.created_at.isoformat(),
    }


def credit_transaction_summary(transaction: CreditTransaction) -> dict:
    return {
        "id": str(transaction.id),
        "type": transaction.type,
        "amount": transaction.amount,
        "balance": transaction.balance,
        "description": transaction.description,
        "payment_mode": transaction.payment_mode,
        "notes": transaction.notes,
        "sale_id": str(transaction.sale_id) if transaction.sale_id else None,
        "created_at": transaction.created_at.isoformat(),
    }


def batch_summary(batch: InventoryBatch, product: Product) -> dict:
    return {
        "id": str(batch.id),
        "batch_number": batch.batch_number,
        "expiry_date": batch.expiry_date.isoformat() if batch.expiry_date else None,
        "quantity": batch.quantity,
        "purchase_price": batch.purchase_price,
        "selling_price": batch.selling_price,
        "is_active": batch.is_active,
        "product": {
            "id": str(product.id),
            "name": product.name,
            "generic_name": product.generic_name,
            "category": product.category,
            "unit": product.unit,
        },
    }


class PharmacyService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def next_sale_number(self, clinic_id: UUID) -> str:
        prefix = f"SALE-{date.today().strftime('%Y%m%d')}"
        stmt = (
            select(Sale.sale_number)
            .where(Sale.clinic_id == clinic_id, Sale.sale_number.startswith(prefix))
            .order_by(Sale.sale_number.desc())
        )
        last = (await self.session.execute(stmt)).scalars().first()
        return f"{prefix}-{next_sequence(last):04d}"

    async def get_clinic_credit_account(self, access: ClinicAccess, account_id: UUID) -> Optional[CreditAccount]:
        account = await self.session.get(CreditAccount, account_id)
        if not account or account.clinic_id != access.clinic_id:
            return None
        return account

    async def create_sale(self, access: ClinicAccess, data: SaleCreate) -> dict:
        if not data.items:
            raise HTTPException(status_code=400, detail="Cart is empty")

        batches = {}
        for item in data.items:
            if item.quantity <= 0:
                raise HTTPException(status_code=400, detail=f"Invalid quantity for product: {item.product_name}")
            batch = await self.session.get(InventoryBatch, item.batch_id)
            if not batch or batch.clinic_id != access.clinic_id:
                raise HTTPException(status_code=400, detail=f"Invalid batch for product: {item.product_name}")
            # the same batch may appear on several lines
            requested = sum(i.quantity for i in data.items if i.batch_id == item.batch_id)
            if batch.quantity < requested:
                raise HTTPException(
                    status_code=400,
                    detail=f"Insufficient stock for {item.product_name}. Available: {batch.quantity}",
                )
            batches[batch.id] = batch

        account = None
        if data.is_credit:
            if not data.credit_account_id:
                raise HTTPException(status_code=400, detail="Credit account is required for credit sale")
            account = await self.get_clinic_credit_account(access, data.credit_account_id)
            if not account or not account.is_active:
                raise HTTPException(status_code=400, detail="Invalid credit account")

        items = [
            {
                "product_id": str(item.product_id) if item.product_id else None,
                "batch_id": str(item.batch_id),
                "product_name": item.product_name,
                "batch_number": item.batch_number or batches[item.batch_id].batch_number,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "discount": item.discount,
                "amount": item_amount(item),
            }
            for item in data.items
        ]
        subtotal = data.subtotal if data.subtotal is not None else sum(item["amount"] for item in items)
        total = data.total if data.total is not None else subtotal - data.discount + data.tax_amount

        sale_number = await self.next_sale_number(access.clinic_id)
        sale = Sale(
            clinic_id=access.clinic_id,
            sale_number=sale_number,
            items=items,
            subtotal=subtotal,
            discount=data.discount,
            tax_amount=data.tax_amount,
            total=total,
            amount_paid=0 if data.is_credit else data.amount_paid,
            amount_due=total if data.is_credit else max(0, total - data.amount_paid),
            payment_mode=PaymentMode.CREDIT.value if data.is_credit else data.payment_mode,
            is_credit=data.is_credit,
            credit_account_id=account.id if account else None,
            prescription_id=data.prescription_id,
            notes=data.notes or None,
        )
        self.session.add(sale)
        await self.session.flush()

        for item in data.items:
            batch = batches[item.batch_id]
            batch.quantity -= item.quantity
            if batch.quantity <= 0:
                batch.is_active = False
            self.session.add(batch)

        if account:
            account.current_balance += total
            self.session.add(account)
            self.session.add(CreditTransaction(
                clinic_id=access.clinic_id,
                credit_account_id=account.id,
                sale_id=sale.id,
                type=CreditTransactionType.SALE.value,
                amount=total,
                balance=account.current_balance,
                description=f"Sale: {sale_number}",
            ))

        await self.session.commit()
        await self.session.refresh(sale)

        logger.info(f"Pharmacy sale {sale.sale_number} completed at clinic {access.clinic_id}")

        return {
            "sale": {
                "id": str(sale.id),
                "sale_number": sale.sale_number,
                "total": sale.total,
                "amount_paid": sale.amount_paid,
                "amount_due": sale.amount_due,
                "is_credit": sale.is_credit,
            },
            "receipt": generate_receipt(access.clinic.name, sale),
        }

    async def list_credit_accounts(
        self, access: ClinicAccess, search: Optional[str] = None, is_active: Optional[bool] = None
    ) -> dict:
        stmt = select(CreditAccount).where(CreditAccount.clinic_id == access.clinic_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(CreditAccount.customer_name.ilike(pattern), CreditAccount.phone.ilike(pattern)))
        if is_active is not None:
            stmt = stmt.where(CreditAccount.is_active == is_active)
        accounts = (await self.session.execute(stmt.order_by(CreditAccount.customer_name))).scalars().all()
        return {"accounts": [credit_account_summary(account) for account in accounts]}

    async def create_credit_account(self, access: ClinicAccess, data: CreditAccountCreate) -> dict:
        if not data.name or not data.name.strip():
            raise HTTPException(status_code=400, detail="Customer name is required")
        phone = data.phone.strip() if data.phone and data.phone.strip() else None
        if phone:
            stmt = select(CreditAccount.id).where(
                CreditAccount.clinic_id == access.clinic_id,
                CreditAccount.phone == phone,
            )
            if (await self.session.execute(stmt)).first():
                raise HTTPException(status_code=400, detail="A credit account with this phone number already exists")

        account = CreditAccount(
            clinic_id=access.clinic_id,
            customer_name=data.name.strip(),
            phone=phone,
            address=data.address.strip() if data.address and data.address.strip() else None,
            credit_limit=data.credit_limit or 0,
            current_balance=0,
        )
        self.session.add(account)
        await self.session.commit()
        await self.session.refresh(account)
        return {"account": credit_account_summary(account)}

    async def get_credit_account(self, access: ClinicAccess, account_id: UUID) -> dict:
        account = await self.get_clinic_credit_account(access, account_id)
        if not account:
            raise HTTPException(status_code=404, detail="Credit account not found")

        stmt = (
            select(CreditTransaction)
            .where(CreditTransaction.credit_account_id == account.id)
            .order_by(CreditTransaction.created_at.desc())
            .limit(ACCOUNT_TRANSACTIONS_SHOWN)
        )
        transactions = (await self.session.execute(stmt)).scalars().all()
        stmt = (
            select(Sale)
            .where(Sale.credit_account_id == account.id)
            .order_by(Sale.created_at.desc())
            .limit(ACCOUNT_SALES_SHOWN)
        )
        sales = (await self.session.execute(stmt)).scalars().all()
        return {
            "account": credit_account_summary(account),
            "transactions": [credit_transaction_summary(t) for t in transactions],
            "sales": [
                {
                    "id": str(sale.id),
                    "sale_number": sale.sale_number,
                    "total": sale.total,
                    "amount_due": sale.amount_due,
                    "created_at": sale.created_at.isoformat(),
                }
                for sale in sales
            ],
        }

    async def record_payment(self, access: ClinicAccess, account_id: UUID, data: CreditPayment) -> dict:
        account = await self.get_clinic_credit_account(access, account_id)
        if not account:
            raise HTTPException(status_code=404, detail="Credit account not found")
        if data.amount is None or data.amount <= 0:
            raise HTTPException(status_code=400, detail="Invalid payment amount")
        if data.amount > account.current_balance:
            raise HTTPException(status_code=400, detail="Payment amount exceeds outstanding balance")

        account.current_balance -= data.amount
        transaction = CreditTransaction(
            clinic_id=access.clinic_id,
            credit_account_id=account.id,
            type=CreditTransactionType.PAYMENT.value,
            amount=data.amount,
            balance=account.current_balance,
            description="Payment received",
            payment_mode=data.payment_mode or PaymentMode.CASH.value,
            notes=data.notes.strip() if data.notes and data.notes.strip() else None,
        )
        self.session.add(account)
        self.session.add(transaction)
        await self.session.commit()
        await self.session.refresh(account)
        await self.session.refresh(transaction)

        return {
            "success": True,
            "account": {
                "id": str(account.id),
                "customer_name": account.customer_name,
                "current_balance": account.current_balance,
            },
            "transaction": credit_transaction_summary(transaction),
        }

    async def list_inventory(
        self,
        access: ClinicAccess,
        search: Optional[str] = None,
        expiring_within_days: Optional[int] = None,
        include_inactive: bool = False,
    ) -> dict:
        stmt = (
            select(InventoryBatch, Product)
            .join(Product, Product.id == InventoryBatch.product_id)
            .where(InventoryBatch.clinic_id == access.clinic_id)
        )
        if not include_inactive:
            stmt = stmt.where(InventoryBatch.is_active == True, InventoryBatch.quantity > 0)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Product.name.ilike(pattern), Product.generic_name.ilike(pattern)))
        if expiring_within_days is not None:
            cutoff = date.today() + timedelta(days=expiring_within_days)
            stmt = stmt.where(InventoryBatch.expiry_date != None, InventoryBatch.expiry_date <= cutoff)
        stmt = stmt.order_by(Product.name, InventoryBatch.expiry_date)
        rows = (await self.session.execute(stmt)).all()

        batches: List[dict] = [batch_summary(batch, product) for batch, product in rows]
        return {
            "batches": batches,
            "totalUnits": sum(batch["quantity"] for batch in batches),
            "totalStockValue": sum(batch["quantity"] * batch["selling_price"] for batch in batches),
        }

    async def add_stock(self, access: ClinicAccess, data: BatchCreate) -> dict:
        if not data.batch_number or not data.batch_number.strip():
            raise HTTPException(status_code=400, detail="Batch number is required")
        if data.quantity is None or data.quantity <= 0:
            raise HTTPException(status_code=400, detail="Quantity must be greater than 0")
        if data.selling_price is None or data.selling_price < 0:
            raise HTTPException(status_code=400, detail="Valid selling price is required")

        if data.product_id:
            product = await self.session.get(Product, data.product_id)
            if not product or product.clinic_id != access.clinic_id:
                raise HTTPException(status_code=404, detail="Product not found")
        elif data.product_name and data.product_name.strip():
            product = Product(
                clinic_id=access.clinic_id,
                name=data.product_name.strip(),
                generic_name=data.generic_name,
                category=data.category,
                unit=data.unit,
            )
            self.session.add(product)
            await self.session.flush()
        else:
            raise HTTPException(status_code=400, detail="Product is required")

        batch = InventoryBatch(
            clinic_id=access.clinic_id,
            product_id=product.id,
            batch_number=data.batch_number.strip(),
            expiry_date=data.expiry_date,
            quantity=data.quantity,
            purchase_price=data.purchase_price,
            selling_price=data.selling_price,
        )
        self.session.add(batch)
        await self.session.commit()
        await self.session.refresh(batch)
        await self.session.refresh(product)
        return {"batch": batch_summary(batch, product)}
