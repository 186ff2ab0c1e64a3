# supply_inventory/models.py
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Boolean, ForeignKey, Enum, Index,
    UniqueConstraint, event, update
)
from sqlalchemy.orm import declarative_base, relationship
import enum

from supply_inventory.core.ledger import AbsoluteSet, effect_for
from supply_inventory.exceptions import PersistenceError
from supply_inventory.utils.date_utils import utcnow

Base = declarative_base()

class MovementType(enum.Enum):
    """Enum for inventory movement types.

    Values:
        IN ('in'): Stock added (restock, purchase)
        OUT ('out'): Stock consumed
        ADJUST ('adjust'): Absolute correction; the quantity is the new level, not a delta
    """
    IN = 'in'
    OUT = 'out'
    ADJUST = 'adjust'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'MovementType':
        """Create a MovementType from a string value.

        Raises:
            ValueError if the string value is not valid
        """
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Invalid movement type: {value}. Valid values are: in, out, adjust")

class Supply(Base):
    __tablename__ = 'supply'

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    unit = Column(String(32), nullable=False, default='ks')
    sku = Column(String(64))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    aliases = relationship("SupplyAlias", back_populates="supply")

    __table_args__ = (
        Index('ix_supply_tenant_active', 'tenant_id', 'is_active'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'name': self.name,
            'unit': self.unit,
            'sku': self.sku,
            'is_active': self.is_active
        }

class SupplyAlias(Base):
    __tablename__ = 'supply_alias'

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    supply_id = Column(Integer, ForeignKey('supply.id'), nullable=False)
    alias = Column(String(200), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    supply = relationship("Supply", back_populates="aliases")

    __table_args__ = (
        UniqueConstraint('tenant_id', 'alias', name='ux_supply_alias_tenant_alias'),
    )

class Property(Base):
    """Property reference row, owned by the property-management side."""
    __tablename__ = 'property'

    id = Column(String(64), primary_key=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)

class InventoryRecord(Base):
    __tablename__ = 'inventory'

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(64), nullable=False)
    property_id = Column(String(64), nullable=False)
    supply_id = Column(Integer, ForeignKey('supply.id'), nullable=False)

    # Cached fold of the movement ledger for this triple
    current_qty = Column(Float, nullable=False, default=0.0)
    min_qty = Column(Float, nullable=False, default=0.0)
    max_qty = Column(Float, nullable=False, default=0.0)

    version = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    supply = relationship("Supply")

    __table_args__ = (
        UniqueConstraint('tenant_id', 'property_id', 'supply_id', name='ux_inventory_triple'),
        Index('ix_inventory_tenant_property', 'tenant_id', 'property_id'),
    )

    __mapper_args__ = {
        'version_id_col': version
    }

class InventoryMovement(Base):
    __tablename__ = 'inventory_movement'

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(64), nullable=False)
    property_id = Column(String(64), nullable=False)
    supply_id = Column(Integer, ForeignKey('supply.id'), nullable=False)
    movement_type = Column(
        'type',
        Enum(MovementType, name='movement_type', values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    qty = Column(Float, nullable=False)
    source = Column(String(255), nullable=False)
    ref_event_id = Column(String(64))
    created_at = Column(DateTime, nullable=False, default=utcnow)

    supply = relationship("Supply")

    __table_args__ = (
        # NULL ref_event_id never collides, so only event-sourced rows are constrained
        UniqueConstraint('tenant_id', 'ref_event_id', 'supply_id', 'source',
                         name='ux_inventory_movement_event_supply'),
        Index('ix_inventory_movement_triple', 'tenant_id', 'property_id', 'supply_id', 'created_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'property_id': self.property_id,
            'supply_id': self.supply_id,
            'type': str(self.movement_type),
            'qty': self.qty,
            'source': self.source,
            'ref_event_id': self.ref_event_id,
            'created_at': self.created_at
        }


@event.listens_for(InventoryMovement, 'after_insert')
def apply_movement_to_record(mapper, connection, target):
    """Apply a freshly inserted movement to its cached inventory record.

    Runs inside the inserting transaction and bumps the record version,
    so a reconciler holding an older version fails its write.
    """
    effect = effect_for(target.movement_type, target.qty)
    table = InventoryRecord.__table__

    if isinstance(effect, AbsoluteSet):
        new_qty = effect.qty
    else:
        new_qty = table.c.current_qty + effect.qty

    connection.execute(
        update(table)
        .where(
            table.c.tenant_id == target.tenant_id,
            table.c.property_id == target.property_id,
            table.c.supply_id == target.supply_id
        )
        .values(current_qty=new_qty, version=table.c.version + 1, updated_at=utcnow())
    )


@event.listens_for(InventoryMovement, 'before_update')
def reject_movement_update(mapper, connection, target):
    raise PersistenceError("Inventory movements are append-only", code='IMMUTABLE_MOVEMENT')


@event.listens_for(InventoryMovement, 'before_delete')
def reject_movement_delete(mapper, connection, target):
    raise PersistenceError("Inventory movements are append-only", code='IMMUTABLE_MOVEMENT')
