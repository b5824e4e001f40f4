"""
Flat-file export/import of issued tokens and reusable claims templates.

Tokens and templates are kept in memory as append-only sequences and
serialized to a single JSON document on export. Import appends whatever
the document holds: no duplicate detection and no re-verification of the
imported tokens' signatures.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from jwt_validator.config.jwt_config import JWTSettings

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


class ExportError(Exception):
    """Export file could not be written."""
    pass


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class TokenData(_CamelModel):
    """A token issued in this session."""
    subject: str = Field(default="", description="Token subject")
    claims: Dict[str, str] = Field(default_factory=dict, description="Caller claims")
    token: str = Field(default="", description="Encoded token")
    generated_at: datetime = Field(default_factory=_utc_now, description="Issuance time")
    description: Optional[str] = Field(None, description="Optional note")


class ClaimsTemplate(_CamelModel):
    """A named, reusable set of claims."""
    name: str = Field(default="", description="Template name")
    description: str = Field(default="", description="Template description")
    claims: Dict[str, str] = Field(default_factory=dict, description="Claims")
    created_at: datetime = Field(default_factory=_utc_now, description="Creation time")


class ExportData(_CamelModel):
    """Export document."""
    version: str = Field(default=EXPORT_VERSION)
    export_date: datetime = Field(default_factory=_utc_now)
    jwt_settings: Optional[Dict[str, Any]] = Field(None)
    tokens: Optional[List[TokenData]] = Field(None)
    claims_templates: Optional[List[ClaimsTemplate]] = Field(None)


class ImportResult(_CamelModel):
    """Outcome of an import."""
    success: bool = False
    message: str = ""
    tokens_imported: int = 0
    templates_imported: int = 0
    errors: List[str] = Field(default_factory=list)


class ExportImportService:
    """
    Keeps issued tokens and claims templates and moves them to/from JSON files.
    """

    def __init__(self, export_dir: str = "exports"):
        """
        Args:
            export_dir: Directory for default export paths; created on first use
        """
        self.export_dir = Path(export_dir)
        self._generated_tokens: List[TokenData] = []
        self._claims_templates: List[ClaimsTemplate] = []

    def add_generated_token(
        self,
        subject: str,
        claims: Dict[str, str],
        token: str,
        description: Optional[str] = None,
    ) -> TokenData:
        token_data = TokenData(
            subject=subject,
            claims=dict(claims),
            token=token,
            description=description,
        )
        self._generated_tokens.append(token_data)
        return token_data

    def add_claims_template(
        self, name: str, description: str, claims: Dict[str, str]
    ) -> ClaimsTemplate:
        template = ClaimsTemplate(name=name, description=description, claims=dict(claims))
        self._claims_templates.append(template)
        return template

    def export_to_file(
        self,
        file_path: str,
        jwt_settings: Optional[JWTSettings] = None,
        include_tokens: bool = True,
        include_templates: bool = True,
        include_settings: bool = True,
    ) -> str:
        """
        Write the selected sections to a JSON file.

        Args:
            file_path: Destination path
            jwt_settings: Settings to embed when include_settings is set
            include_tokens: Include issued tokens
            include_templates: Include claims templates
            include_settings: Include the settings record

        Returns:
            Success message

        Raises:
            ExportError: If the file cannot be written
        """
        export_data = ExportData()
        if include_settings and jwt_settings is not None:
            export_data.jwt_settings = jwt_settings.export_dict()
        if include_tokens:
            export_data.tokens = list(self._generated_tokens)
        if include_templates:
            export_data.claims_templates = list(self._claims_templates)

        document = export_data.model_dump_json(by_alias=True, exclude_none=True, indent=2)

        path = Path(file_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(document, encoding="utf-8")
        except OSError as e:
            raise ExportError(f"Export failed: {e}") from e

        logger.info(
            "Exported %d tokens and %d templates to %s",
            len(export_data.tokens or []),
            len(export_data.claims_templates or []),
            path,
        )
        return f"Export completed successfully to: {path}"

    def import_from_file(self, file_path: str) -> ImportResult:
        """
        Append tokens and templates from an export file.

        Never raises for a bad file; problems are reported in the result.
        """
        result = ImportResult()
        path = Path(file_path)

        if not path.is_file():
            result.message = "Import file does not exist."
            return result

        try:
            export_data = ExportData.model_validate(
                json.loads(path.read_text(encoding="utf-8"))
            )
        except json.JSONDecodeError as e:
            result.message = f"Invalid JSON format: {e.msg}"
            result.errors.append(str(e))
            return result
        except UnicodeDecodeError as e:
            result.message = "Import file is not valid UTF-8."
            result.errors.append(str(e))
            return result
        except RecursionError:
            result.message = "Invalid JSON format: nested too deeply"
            return result
        except ValidationError as e:
            result.message = "Invalid export file format."
            result.errors.extend(
                f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}"
                for error in e.errors()
            )
            return result
        except OSError as e:
            result.message = f"Import failed: {e}"
            result.errors.append(str(e))
            return result

        for token in export_data.tokens or []:
            self._generated_tokens.append(token)
            result.tokens_imported += 1

        for template in export_data.claims_templates or []:
            self._claims_templates.append(template)
            result.templates_imported += 1

        result.success = True
        result.message = (
            "Import completed successfully. "
            f"Tokens: {result.tokens_imported}, Templates: {result.templates_imported}"
        )
        logger.info("Imported %s from %s", result.message, path)
        return result

    def get_generated_tokens(self) -> Tuple[TokenData, ...]:
        return tuple(self._generated_tokens)

    def get_claims_templates(self) -> Tuple[ClaimsTemplate, ...]:
        return tuple(self._claims_templates)

    def get_claims_template(self, name: str) -> Optional[ClaimsTemplate]:
        """Find a template by name, ignoring case."""
        wanted = name.casefold()
        for template in self._claims_templates:
            if template.name.casefold() == wanted:
                return template
        return None

    def clear_tokens(self) -> None:
        self._generated_tokens.clear()

    def clear_templates(self) -> None:
        self._claims_templates.clear()

    def generate_default_export_path(self) -> str:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return str(self.export_dir / f"jwt_export_{timestamp}.json")

    def get_available_export_files(self) -> List[str]:
        """List export file names in the export directory, newest name first."""
        if not self.export_dir.is_dir():
            return []
        return sorted(
            (entry.name for entry in self.export_dir.glob("*.json") if entry.is_file()),
            reverse=True,
        )
