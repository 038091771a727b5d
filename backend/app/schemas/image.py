from pydantic import BaseModel


class UploadResponse(BaseModel):
    success: bool = True
    message: str = "Image uploaded and analyzed successfully"
    url: str
    description: str
    labels: list[str]


class AnalyzeRequest(BaseModel):
    bucket: str | None = None
    key: str | None = None


class AnalyzeResponse(BaseModel):
    success: bool = True
    description: str
    labels: list[str]


class ErrorResponse(BaseModel):
    error: str
    details: str
