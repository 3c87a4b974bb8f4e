from passlib.context import CryptContext

# --- Hashing de contraseñas de usuarios ---
# bcrypt; "deprecated=auto" permite migrar hashes antiguos al verificarlos
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Compara una contraseña en texto plano con un hash existente.
    Devuelve True si coinciden, False si no.
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)
