import uuid


def file_extension(filename: str | None) -> str:
    """Retourne ce qui suit le dernier '.' du nom, ou '' s'il n'y en a pas."""
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1]


def generate_storage_key(filename: str | None) -> str:
    """Génère une clé de stockage unique : <uuid4>.<extension d'origine>."""
    token = str(uuid.uuid4())
    ext = file_extension(filename)
    return f"{token}.{ext}" if ext else token
