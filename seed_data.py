"""Seed database with demo data."""
from equiptrack.database import SessionLocal, init_db
from equiptrack.models import User, Equipment, NfcTag, EquipmentEvent
from equiptrack.auth import get_password_hash
import uuid


def seed():
    """Seed database with demo data."""
    init_db()
    db = SessionLocal()

    try:
        if db.query(User).filter(User.email == "admin@nfc-equipment.com").first():
            print("ℹ️ Database already seeded, nothing to do")
            return

        # Create users
        admin = User(
            id=uuid.UUID('00000000-0000-0000-0000-000000000101'),
            email="admin@nfc-equipment.com",
            password_hash=get_password_hash("Admin1234"),
            first_name="Admin",
            last_name="System",
            role="ADMIN",
        )
        user = User(
            id=uuid.UUID('00000000-0000-0000-0000-000000000102'),
            email="user@nfc-equipment.com",
            password_hash=get_password_hash("User12345"),
            first_name="Test",
            last_name="User",
            role="USER",
        )
        db.add_all([admin, user])
        db.flush()

        # Create equipment
        equipments_data = [
            {
                'name': 'Cordless drill Bosch',
                'description': '18V cordless drill with 2 batteries',
                'category': 'Power tools',
                'status': 'IN_SERVICE',
                'location': 'Workshop A - Shelf 2',
                'notes': 'Check battery state before use',
            },
            {
                'name': 'Telescopic ladder 4m',
                'description': 'Aluminium telescopic ladder, 4 metres',
                'category': 'Safety equipment',
                'status': 'IN_SERVICE',
                'location': 'Hangar B - Storage',
            },
            {
                'name': 'Portable compressor',
                'description': '50L portable air compressor',
                'category': 'Pneumatics',
                'status': 'MAINTENANCE',
                'location': 'Workshop C - Maintenance',
                'notes': 'Pressure problem, to be repaired',
            },
            {
                'name': 'Fluke multimeter',
                'description': 'High precision digital multimeter',
                'category': 'Instrumentation',
                'status': 'LOANED',
                'location': 'Loaned to J. Dupont',
            },
        ]

        equipments = []
        for equipment_data in equipments_data:
            equipment = Equipment(created_by=admin.id, **equipment_data)
            db.add(equipment)
            equipments.append(equipment)
        db.flush()

        for equipment in equipments:
            db.add(EquipmentEvent(
                equipment_id=equipment.id,
                type='STATUS_CHANGE',
                description=f"Equipment created with status {equipment.status}",
                user_id=admin.id,
                event_metadata={'previousStatus': None, 'newStatus': equipment.status, 'action': 'create'},
            ))

        # Create NFC tags: two bound, one spare in inventory
        db.add(NfcTag(tag_id='NFC001', equipment_id=equipments[0].id))
        db.add(NfcTag(tag_id='NFC002', equipment_id=equipments[1].id))
        db.add(NfcTag(tag_id='NFC003', is_active=True))
        for equipment, tag_id in ((equipments[0], 'NFC001'), (equipments[1], 'NFC002')):
            db.add(EquipmentEvent(
                equipment_id=equipment.id,
                type='TAG_ASSIGNED',
                description=f"NFC tag {tag_id} assigned",
                user_id=admin.id,
                event_metadata={'tagId': tag_id, 'action': 'tag_assign'},
            ))

        db.add(EquipmentEvent(
            equipment_id=equipments[3].id,
            type='LOAN',
            description='Loaned to J. Dupont',
            user_id=admin.id,
            event_metadata={'borrowerName': 'J. Dupont'},
        ))
        db.add(EquipmentEvent(
            equipment_id=equipments[2].id,
            type='MAINTENANCE_START',
            description='Maintenance started - pressure problem',
            user_id=user.id,
            event_metadata={'issue': 'pressure'},
        ))

        db.commit()
        print("✅ Database seeded successfully!")
        print("\nDemo users:")
        print("  admin@nfc-equipment.com / Admin1234 (Administrator)")
        print("  user@nfc-equipment.com / User12345 (User)")

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
