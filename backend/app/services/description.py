NO_LABELS_DESCRIPTION = "No clear objects detected in this image."


def generate_description(labels: list[str]) -> str:
    """Génère une phrase lisible à partir des labels détectés."""
    if not labels:
        return NO_LABELS_DESCRIPTION
    return f"This image contains: {', '.join(labels)}."
