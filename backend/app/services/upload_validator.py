from app.services.errors import PayloadTooLarge, UnsupportedMediaType

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png"}
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 Mo


def validate_upload(content: bytes, content_type: str | None) -> None:
    """Valide un fichier uploadé avant tout appel réseau.

    Seul le type MIME déclaré est vérifié (pas d'inspection du contenu).
    Lève UnsupportedMediaType puis PayloadTooLarge, dans cet ordre.
    """
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedMediaType()
    if len(content) > MAX_FILE_SIZE:
        raise PayloadTooLarge(
            f"File size too large. Max size is {MAX_FILE_SIZE // 1024 // 1024}MB."
        )
