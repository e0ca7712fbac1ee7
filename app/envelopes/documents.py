# app/envelopes/documents.py

import re
from pathlib import Path
from typing import List

from jinja2 import Environment, FileSystemLoader, TemplateError

from app.envelopes.exceptions import DocumentGenerationException, ValidationError
from app.envelopes.schemas import TemplateFields
from app.utils.logger import get_logger
from app.utils.storage import BlobStore, StorageError, unique_name

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates" / "documents"
TEMPLATE_NAME_REGEX = re.compile(r"^[A-Za-z0-9_-]+$")

jinja_env = Environment(loader=FileSystemLoader(TEMPLATE_DIR), autoescape=True)


def template_exists(name: str) -> bool:
    """Only plain names that map to a shipped template are usable."""
    return bool(TEMPLATE_NAME_REGEX.match(name)) and (TEMPLATE_DIR / f"{name}.html").is_file()


def render_documents(selected: List[str], fields: TemplateFields, blob_store: BlobStore) -> List[dict]:
    """
    Render each selected template with the fill fields and store the result
    as an original document. Unknown template names are skipped.

    Raises:
        ValidationError: If none of the selected templates exist
        DocumentGenerationException: If rendering or storing fails
    """
    context = fields.model_dump()
    files = []
    for name in selected:
        if not template_exists(name):
            logger.warning("Skipping unknown template", template=name)
            continue

        try:
            html = jinja_env.get_template(f"{name}.html").render(context)
            filename = unique_name(f"-{name}.html")
            stored = blob_store.store(html.encode("utf-8"), filename, "text/html")
        except (TemplateError, StorageError) as e:
            logger.error("Error generating document", template=name, error_message=str(e))
            raise DocumentGenerationException("Generation failed", {"template": name}) from e

        files.append({
            "filename": filename,
            "stored_name": stored.stored_name,
            "public_url": stored.public_url,
            "mimetype": "text/html",
        })

    if not files:
        raise ValidationError("No templates found", {"templates": selected})
    return files
