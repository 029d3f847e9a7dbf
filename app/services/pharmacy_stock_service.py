from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, func, or_

from app.core.clinic_access import ClinicAccess
from app.core.logger import logger
from app.core.utils import is_valid_email, pagination
from app.db.models import InventoryBatch, Product, Supplier
from app.schemas.pharmacy import ProductCreate, ProductUpdate, PurchaseCreate, SupplierCreate, SupplierUpdate
from app.services.appointment_service import parse_date
from app.services.pharmacy_service import batch_summary

DEFAULT_CATEGORY = "MEDICINE"
DEFAULT_UNIT = "strip"


def text(value: Optional[str]) -> Optional[str]:
    return value.strip() if value and value.strip() else None


def supplier_summary(supplier: Supplier) -> dict:
    return {
        "id": str(supplier.id),
        "name": supplier.name,
        "contact_name": supplier.contact_name,
        "phone": supplier.phone,
        "email": supplier.email,
        "address": supplier.address,
        "pan_number": supplier.pan_number,
        "payment_terms": supplier.payment_terms,
        "notes": supplier.notes,
        "is_active": supplier.is_active,
        "created_at": supplier.created_at.isoformat(),
    }


def product_summary(product: Product, stock: int = 0) -> dict:
    return {
        "id": str(product.id),
        "name": product.name,
        "generic_name": product.generic_name,
        "category": product.category,
        "manufacturer": product.manufacturer,
        "barcode": product.barcode,
        "unit": product.unit,
        "pack_size": product.pack_size,
        "min_stock_level": product.min_stock_level,
        "supplier_id": str(product.supplier_id) if product.supplier_id else None,
        "is_active": product.is_active,
        "total_stock": stock,
        "low_stock": stock < product.min_stock_level,
    }


class PharmacyStockService:
    """Product catalogue, suppliers and purchase receipts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _product(self, access: ClinicAccess, product_id: UUID) -> Product:
        product = await self.session.get(Product, product_id)
        if not product or product.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Product not found")
        return product

    async def _supplier(self, access: ClinicAccess, supplier_id: UUID) -> Supplier:
        supplier = await self.session.get(Supplier, supplier_id)
        if not supplier or supplier.clinic_id != access.clinic_id:
            raise HTTPException(status_code=404, detail="Supplier not found")
        return supplier

    async def _stock_levels(self, product_ids: List[UUID]) -> Dict[UUID, int]:
        if not product_ids:
            return {}
        stmt = (
            select(InventoryBatch.product_id, func.sum(InventoryBatch.quantity))
            .where(InventoryBatch.product_id.in_(product_ids), InventoryBatch.is_active == True)
            .group_by(InventoryBatch.product_id)
        )
        return {product_id: int(total or 0) for product_id, total in (await self.session.execute(stmt)).all()}

    async def _check_barcode(self, clinic_id: UUID, barcode: Optional[str], exclude_id: Optional[UUID] = None):
        if not barcode:
            return
        stmt = select(Product.id).where(Product.clinic_id == clinic_id, Product.barcode == barcode)
        if exclude_id:
            stmt = stmt.where(Product.id != exclude_id)
        if (await self.session.execute(stmt)).first():
            raise HTTPException(status_code=400, detail="A product with this barcode already exists")

    async def _check_supplier_name(self, clinic_id: UUID, name: str, exclude_id: Optional[UUID] = None):
        stmt = select(Supplier.id).where(Supplier.clinic_id == clinic_id, func.lower(Supplier.name) == name.lower())
        if exclude_id:
            stmt = stmt.where(Supplier.id != exclude_id)
        if (await self.session.execute(stmt)).first():
            raise HTTPException(status_code=400, detail="A supplier with this name already exists")

    # -- products -------------------------------------------------------------

    async def list_products(
        self,
        access: ClinicAccess,
        search: Optional[str] = None,
        category: Optional[str] = None,
        supplier_id: Optional[UUID] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        limit: int = 50,
    ) -> dict:
        page = max(1, page)
        limit = min(100, max(1, limit))
        conditions = [Product.clinic_id == access.clinic_id]
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                Product.name.ilike(pattern),
                Product.generic_name.ilike(pattern),
                Product.barcode.ilike(pattern),
            ))
        if category:
            conditions.append(Product.category == category)
        if supplier_id:
            conditions.append(Product.supplier_id == supplier_id)
        if is_active is not None:
            conditions.append(Product.is_active == is_active)

        stmt = select(Product).where(*conditions).order_by(Product.name).offset((page - 1) * limit).limit(limit)
        products = (await self.session.execute(stmt)).scalars().all()
        total = (await self.session.execute(select(func.count(Product.id)).where(*conditions))).scalar() or 0
        stock = await self._stock_levels([p.id for p in products])
        return {
            "products": [product_summary(p, stock.get(p.id, 0)) for p in products],
            "pagination": pagination(total, page, limit),
        }

    async def create_product(self, access: ClinicAccess, data: ProductCreate) -> dict:
        name = text(data.name)
        if not name:
            raise HTTPException(status_code=400, detail="Product name is required")
        if data.min_stock_level is not None and data.min_stock_level < 0:
            raise HTTPException(status_code=400, detail="Minimum stock level cannot be negative")
        barcode = text(data.barcode)
        await self._check_barcode(access.clinic_id, barcode)
        if data.supplier_id:
            await self._supplier(access, data.supplier_id)

        product = Product(
            clinic_id=access.clinic_id,
            supplier_id=data.supplier_id,
            name=name,
            generic_name=text(data.generic_name),
            category=text(data.category) or DEFAULT_CATEGORY,
            manufacturer=text(data.manufacturer),
            barcode=barcode,
            unit=text(data.unit) or DEFAULT_UNIT,
            pack_size=data.pack_size,
            min_stock_level=data.min_stock_level or 0,
        )
        self.session.add(product)
        await self.session.commit()
        await self.session.refresh(product)
        return {"product": product_summary(product)}

    async def update_product(self, access: ClinicAccess, product_id: UUID, data: ProductUpdate) -> dict:
        product = await self._product(access, product_id)
        fields = data.model_dump(exclude_unset=True)

        if "name" in fields:
            if not text(fields["name"]):
                raise HTTPException(status_code=400, detail="Product name is required")
            product.name = text(fields["name"])
        if "barcode" in fields:
            barcode = text(fields["barcode"])
            await self._check_barcode(access.clinic_id, barcode, exclude_id=product.id)
            product.barcode = barcode
        if "supplier_id" in fields:
            if fields["supplier_id"]:
                await self._supplier(access, fields["supplier_id"])
            product.supplier_id = fields["supplier_id"]
        if "min_stock_level" in fields:
            level = fields["min_stock_level"] or 0
            if level < 0:
                raise HTTPException(status_code=400, detail="Minimum stock level cannot be negative")
            product.min_stock_level = level
        for key in ("generic_name", "category", "manufacturer", "unit"):
            if key in fields:
                setattr(product, key, text(fields[key]))
        if "pack_size" in fields:
            product.pack_size = fields["pack_size"]
        if fields.get("is_active") is not None:
            product.is_active = fields["is_active"]

        product.updated_at = datetime.utcnow()
        self.session.add(product)
        await self.session.commit()
        await self.session.refresh(product)
        stock = await self._stock_levels([product.id])
        return {"product": product_summary(product, stock.get(product.id, 0))}

    async def delete_product(self, access: ClinicAccess, product_id: UUID) -> dict:
        product = await self._product(access, product_id)
        stock = await self._stock_levels([product.id])
        if stock.get(product.id, 0) > 0:
            raise HTTPException(
                status_code=400,
                detail="Cannot delete product with existing stock. Deactivate it instead.",
            )
        await self.session.execute(delete(InventoryBatch).where(InventoryBatch.product_id == product.id))
        await self.session.delete(product)
        await self.session.commit()
        return {"success": True, "message": "Product deleted"}

    # -- suppliers ------------------------------------------------------------

    async def list_suppliers(
        self, access: ClinicAccess, search: Optional[str] = None, is_active: Optional[bool] = None
    ) -> dict:
        stmt = select(Supplier).where(Supplier.clinic_id == access.clinic_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                Supplier.name.ilike(pattern),
                Supplier.contact_name.ilike(pattern),
                Supplier.phone.ilike(pattern),
            ))
        if is_active is not None:
            stmt = stmt.where(Supplier.is_active == is_active)
        suppliers = (await self.session.execute(stmt.order_by(Supplier.name))).scalars().all()
        return {"suppliers": [supplier_summary(s) for s in suppliers]}

    async def create_supplier(self, access: ClinicAccess, data: SupplierCreate) -> dict:
        name = text(data.name)
        if not name:
            raise HTTPException(status_code=400, detail="Supplier name is required")
        email = text(data.email)
        if email and not is_valid_email(email):
            raise HTTPException(status_code=400, detail="Invalid email format")
        await self._check_supplier_name(access.clinic_id, name)

        supplier = Supplier(
            clinic_id=access.clinic_id,
            name=name,
            contact_name=text(data.contact_name),
            phone=text(data.phone),
            email=email,
            address=text(data.address),
            pan_number=text(data.pan_number),
            payment_terms=text(data.payment_terms),
            notes=text(data.notes),
        )
        self.session.add(supplier)
        await self.session.commit()
        await self.session.refresh(supplier)
        return {"supplier": supplier_summary(supplier)}

    async def update_supplier(self, access: ClinicAccess, supplier_id: UUID, data: SupplierUpdate) -> dict:
        supplier = await self._supplier(access, supplier_id)
        fields = data.model_dump(exclude_unset=True)
        if "name" in fields:
            name = text(fields["name"])
            if not name:
                raise HTTPException(status_code=400, detail="Supplier name is required")
            await self._check_supplier_name(access.clinic_id, name, exclude_id=supplier.id)
            supplier.name = name
        if "email" in fields:
            email = text(fields["email"])
            if email and not is_valid_email(email):
                raise HTTPException(status_code=400, detail="Invalid email format")
            supplier.email = email
        for key in ("contact_name", "phone", "address", "pan_number", "payment_terms", "notes"):
            if key in fields:
                setattr(supplier, key, text(fields[key]))
        if fields.get("is_active") is not None:
            supplier.is_active = fields["is_active"]

        supplier.updated_at = datetime.utcnow()
        self.session.add(supplier)
        await self.session.commit()
        await self.session.refresh(supplier)
        return {"supplier": supplier_summary(supplier)}

    async def delete_supplier(self, access: ClinicAccess, supplier_id: UUID) -> dict:
        supplier = await self._supplier(access, supplier_id)
        products = (await self.session.execute(
            select(func.count(Product.id)).where(Product.supplier_id == supplier.id)
        )).scalar() or 0
        batches = (await self.session.execute(
            select(func.count(InventoryBatch.id)).where(InventoryBatch.supplier_id == supplier.id)
        )).scalar() or 0
        if products or batches:
            raise HTTPException(
                status_code=400,
                detail="Cannot delete supplier with linked products or purchases. Deactivate it instead.",
            )
        await self.session.delete(supplier)
        await self.session.commit()
        return {"success": True, "message": "Supplier deleted"}

    # -- purchases ------------------------------------------------------------

    async def record_purchase(self, access: ClinicAccess, data: PurchaseCreate) -> dict:
        """Receive a supplier invoice into stock, topping up batches that already exist."""
        if not data.supplier_id:
            raise HTTPException(status_code=400, detail="Supplier is required")
        if not data.items:
            raise HTTPException(status_code=400, detail="At least one item is required")

        supplier = await self.session.get(Supplier, data.supplier_id)
        if not supplier or supplier.clinic_id != access.clinic_id or not supplier.is_active:
            raise HTTPException(status_code=400, detail="Invalid supplier")

        product_ids = list({item.product_id for item in data.items})
        stmt = select(Product).where(Product.id.in_(product_ids), Product.clinic_id == access.clinic_id)
        products = {p.id: p for p in (await self.session.execute(stmt)).scalars().all()}
        if len(products) != len(product_ids):
            raise HTTPException(status_code=400, detail="One or more invalid products")

        today = date.today()
        errors = []
        for index, item in enumerate(data.items, start=1):
            if not text(item.batch_number):
                errors.append(f"Item {index}: Batch number is required")
            if not item.expiry_date:
                errors.append(f"Item {index}: Expiry date is required")
            elif item.expiry_date <= today:
                errors.append(f"Item {index}: Expiry date must be in the future")
            if item.quantity is None or item.quantity <= 0:
                errors.append(f"Item {index}: Quantity must be greater than 0")
            if item.purchase_price is None or item.purchase_price < 0:
                errors.append(f"Item {index}: Valid purchase price is required")
            if item.selling_price is None or item.selling_price < 0:
                errors.append(f"Item {index}: Valid selling price is required")
        if errors:
            raise HTTPException(status_code=400, detail={"error": "Validation failed", "details": errors})

        invoice_number = text(data.invoice_number)
        received = data.received_date or today
        saved = []
        created = updated = 0
        for item in data.items:
            batch_number = item.batch_number.strip()
            stmt = select(InventoryBatch).where(
                InventoryBatch.clinic_id == access.clinic_id,
                InventoryBatch.product_id == item.product_id,
                InventoryBatch.batch_number == batch_number,
            )
            batch = (await self.session.execute(stmt)).scalars().first()
            if batch:
                batch.quantity += item.quantity
                batch.purchase_price = item.purchase_price
                batch.selling_price = item.selling_price
                batch.mrp = item.mrp if item.mrp is not None else batch.mrp
                batch.is_active = True
                updated += 1
            else:
                batch = InventoryBatch(
                    clinic_id=access.clinic_id,
                    product_id=item.product_id,
                    batch_number=batch_number,
                    expiry_date=item.expiry_date,
                    quantity=item.quantity,
                    purchase_price=item.purchase_price,
                    mrp=item.mrp,
                    selling_price=item.selling_price,
                )
                created += 1
            batch.supplier_id = supplier.id
            batch.invoice_number = invoice_number
            batch.received_date = received
            self.session.add(batch)
            # same batch twice in one invoice must find the first row
            await self.session.flush()
            saved.append((batch, products[item.product_id]))
        await self.session.commit()

        logger.info(f"Purchase {invoice_number or '-'} from {supplier.name}: {created} new, {updated} topped up")
        return {
            "success": True,
            "batches": [batch_summary(batch, product) for batch, product in saved],
            "summary": {
                "total_items": len(data.items),
                "created": created,
                "updated": updated,
                "total_quantity": sum(item.quantity for item in data.items),
                "total_value": sum(item.quantity * item.purchase_price for item in data.items),
            },
            "invoice_number": invoice_number,
            "supplier": {"id": str(supplier.id), "name": supplier.name},
        }

    async def list_purchases(
        self,
        access: ClinicAccess,
        supplier_id: Optional[UUID] = None,
        invoice_number: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> dict:
        page = max(1, page)
        limit = min(100, max(1, limit))
        conditions = [InventoryBatch.clinic_id == access.clinic_id, InventoryBatch.supplier_id != None]
        if supplier_id:
            conditions.append(InventoryBatch.supplier_id == supplier_id)
        if invoice_number:
            conditions.append(InventoryBatch.invoice_number.ilike(f"%{invoice_number}%"))
        if start_date:
            start = parse_date(start_date)
            if start is None:
                raise HTTPException(status_code=400, detail="Invalid startDate. Use YYYY-MM-DD")
            conditions.append(InventoryBatch.received_date >= start)
        if end_date:
            end = parse_date(end_date)
            if end is None:
                raise HTTPException(status_code=400, detail="Invalid endDate. Use YYYY-MM-DD")
            conditions.append(InventoryBatch.received_date <= end)

        stmt = (
            select(InventoryBatch, Product, Supplier)
            .join(Product, Product.id == InventoryBatch.product_id)
            .join(Supplier, Supplier.id == InventoryBatch.supplier_id)
            .where(*conditions)
            .order_by(InventoryBatch.received_date.desc(), Product.name)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = (await self.session.execute(stmt)).all()
        total = (await self.session.execute(select(func.count(InventoryBatch.id)).where(*conditions))).scalar() or 0
        purchases = [
            {
                **batch_summary(batch, product),
                "invoice_number": batch.invoice_number,
                "received_date": batch.received_date.isoformat() if batch.received_date else None,
                "supplier": {"id": str(supplier.id), "name": supplier.name},
            }
            for batch, product, supplier in rows
        ]
        return {"purchases": purchases, "pagination": pagination(total, page, limit)}
