from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class ImageFormat(StrEnum):
    JPEG = "jpeg"
    PNG = "png"
    HEIC = "heic"
    WEBP = "webp"


class CsvDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["csv"] = "csv"
    delimiter: str = ","
    encoding: str = "utf-8"


class OfxDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["ofx"] = "ofx"
    version: str = "2.2"


class QifDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["qif"] = "qif"
    account_type: str = "Bank"


class PdfDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["pdf"] = "pdf"
    bank_signature: str | None = None


class ImageDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    format: ImageFormat = ImageFormat.JPEG


class UnknownDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["unknown"] = "unknown"


DocumentType = Annotated[
    CsvDocument | OfxDocument | QifDocument | PdfDocument | ImageDocument | UnknownDocument,
    Field(discriminator="kind"),
]


def describe_document(document: DocumentType) -> str:
    match document:
        case CsvDocument(delimiter=delimiter):
            return f"CSV (delimiter {delimiter!r})"
        case OfxDocument(version=version):
            return f"OFX {version}"
        case QifDocument(account_type=account_type):
            return f"QIF ({account_type})"
        case PdfDocument(bank_signature=bank):
            return f"PDF ({bank})" if bank else "PDF"
        case ImageDocument(format=image_format):
            return f"Image ({image_format.value})"
        case UnknownDocument():
            return "Unknown"
    raise TypeError(f"Unsupported document type: {document!r}")
