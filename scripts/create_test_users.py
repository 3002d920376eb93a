"""
Script para crear usuarios de prueba (despachador, remitente y repartidores)
"""
from sqlalchemy.exc import SQLAlchemyError

from delivery_app.config.database import Base, SessionLocal, engine
from delivery_app.shared.database.models import User
from delivery_app.shared.schemas.enums import OnlineStatus, UserRole
from delivery_app.core.auth.service import AuthService

TEST_USERS = [
    {
        "email": "admin@delivery.test",
        "password": "admin123",
        "nombre": "Ana Despachadora",
        "rol": UserRole.ADMIN.value
    },
    {
        "email": "cliente@delivery.test",
        "password": "cliente123",
        "nombre": "Tienda Centro",
        "telefono": "600111222",
        "rol": UserRole.CLIENTE.value
    },
    {
        "email": "repartidor@delivery.test",
        "password": "repartidor123",
        "nombre": "Luis Repartidor",
        "telefono": "600333444",
        "vehiculo": "moto",
        "rol": UserRole.REPARTIDOR.value
    },
    {
        "email": "repartidor2@delivery.test",
        "password": "repartidor123",
        "nombre": "Marta Repartidora",
        "telefono": "600555666",
        "vehiculo": "bicicleta",
        "rol": UserRole.REPARTIDOR.value
    }
]

def create_test_users():
    """Crear usuarios de prueba para cada rol"""

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        existing_users = db.query(User).count()
        if existing_users > 0:
            print(f"✅ Ya existen {existing_users} usuarios en la base de datos")
            return

        for user_data in TEST_USERS:
            data = dict(user_data)
            password = data.pop("password")
            user = User(
                **data,
                password_hash=AuthService.get_password_hash(password),
                is_active=True,
                online_status=OnlineStatus.OFFLINE.value
            )
            db.add(user)
            print(f"✅ Usuario creado: {user_data['email']} / {password} ({user_data['rol']})")

        db.commit()
        print(f"\n🎉 {len(TEST_USERS)} usuarios de prueba creados exitosamente!")

    except SQLAlchemyError as e:
        db.rollback()
        print(f"❌ Error creando usuarios: {e}")
        raise

    finally:
        db.close()

if __name__ == "__main__":
    create_test_users()
