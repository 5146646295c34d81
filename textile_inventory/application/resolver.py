"""Find or open the inventory line a source event should land on."""

import time
from typing import Optional, Tuple

from textile_inventory.core import get_logger
from textile_inventory.domain.errors import ValidationError
from textile_inventory.domain.models import (
    DyeingProcess,
    FabricProduction,
    FabricType,
    InventoryItem,
    ProductType,
    ThreadPurchase,
    ThreadType,
)
from textile_inventory.infrastructure.repository import InventoryRepository

logger = get_logger(__name__)


def describe_purchased_thread(purchase: ThreadPurchase) -> str:
    color = f"{purchase.color} " if purchase.color else ""
    return f"{color}{purchase.thread_type} Thread ({purchase.color_status})"


def describe_dyed_thread(purchase: ThreadPurchase, dyeing: DyeingProcess) -> str:
    return f"Dyed {purchase.thread_type} ({dyeing.color_name or 'Unknown'})"


def describe_fabric(production: FabricProduction) -> str:
    description = f"{production.fabric_type} {production.dimensions}"
    color = production.dyeing_process.color_name if production.dyeing_process else None
    if color:
        description += f" - {color}"
    return description


def item_code_suffix() -> str:
    """Last six digits of the millisecond clock."""
    return f"{int(time.time() * 1000) % 1_000_000:06d}"


class InventoryResolver:
    def __init__(self, repo: InventoryRepository):
        self.repo = repo

    def thread_type_for(self, name: Optional[str], origin: str) -> ThreadType:
        if not name or not name.strip():
            raise ValidationError("Thread type is required")
        thread_type = self.repo.thread_type_by_name(name)
        if thread_type is None:
            thread_type = self.repo.add(ThreadType(
                name=name.strip(),
                description=f"Auto-created from {origin}",
            ))
            logger.info(f"Created thread type '{thread_type.name}' from {origin}")
        return thread_type

    def fabric_type_for(self, name: Optional[str], origin: str) -> FabricType:
        if not name or not name.strip():
            raise ValidationError("Fabric type is required")
        fabric_type = self.repo.fabric_type_by_name(name)
        if fabric_type is None:
            fabric_type = self.repo.add(FabricType(
                name=name.strip(),
                description=f"Auto-created from {origin}",
            ))
            logger.info(f"Created fabric type '{fabric_type.name}' from {origin}")
        return fabric_type

    def new_item_code(self, prefix: str, source_id: int) -> str:
        code = f"{prefix}-{source_id}-{item_code_suffix()}"
        attempt = 0
        while self.repo.item_code_exists(code):
            attempt += 1
            code = f"{prefix}-{source_id}-{item_code_suffix()}-{attempt}"
        return code

    def resolve(self, product_type: str, description: str, *,
                code_prefix: str,
                source_id: int,
                thread_type: Optional[ThreadType] = None,
                fabric_type: Optional[FabricType] = None,
                unit_of_measure: str = "meters",
                location: Optional[str] = None,
                min_stock_level: int = 0,
                notes: Optional[str] = None) -> Tuple[InventoryItem, bool]:
        """
        Return ``(item, created)``. Matching is a case-insensitive comparison of
        the synthesized description within the product category and
        classification; a miss opens an empty line with a fresh item code.
        """
        try:
            product_type = ProductType(product_type).value
        except ValueError:
            raise ValidationError(f"Unrecognized product type: {product_type}")
        if product_type == ProductType.THREAD.value and thread_type is None:
            raise ValidationError("Thread inventory requires a thread type")
        if product_type == ProductType.FABRIC.value and fabric_type is None:
            raise ValidationError("Fabric inventory requires a fabric type")

        thread_type_id = thread_type.id if thread_type else None
        fabric_type_id = fabric_type.id if fabric_type else None
        item = self.repo.find_item(product_type, description, thread_type_id, fabric_type_id)
        if item is not None:
            logger.info(f"Matched inventory item {item.item_code} for '{description}'")
            return item, False

        item = self.repo.add(InventoryItem(
            item_code=self.new_item_code(code_prefix, source_id),
            product_type=product_type,
            description=description,
            thread_type_id=thread_type_id,
            fabric_type_id=fabric_type_id,
            current_quantity=0,
            unit_of_measure=unit_of_measure,
            min_stock_level=min_stock_level,
            location=location,
            notes=notes,
        ))
        logger.info(f"Opened inventory item {item.item_code} for '{description}'")
        return item, True
