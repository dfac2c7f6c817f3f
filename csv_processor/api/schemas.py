# csv_processor/api/schemas.py
from typing import Literal, Optional

from pydantic import BaseModel, Field

class ProcessRequest(BaseModel):
    """Request schema for a CSV processing call"""
    csv_data: str = Field("", description="The CSV data as a string")
    operation: str = Field(..., description="The operation to perform on the CSV data")
    column: Optional[str] = Field(None, description="The column to operate on")
    condition: Optional[str] = Field(None, description="Substring to filter by (filter operation)")
    method: Optional[str] = Field(None, description="Cleaning method: drop, mean, median or mode")
    threshold: Optional[float] = Field(None, description="Z-score threshold for outlier detection")
    format: Optional[str] = Field(None, description="Download format: csv or excel")
    processed_data: Optional[str] = Field(None, description="Previously processed CSV data to download")
    file_name: Optional[str] = Field(None, description="File name offered with the download")

class ProcessResponse(BaseModel):
    """Response schema for a CSV processing call"""
    result: str = Field(..., description="Prose, or a JSON-encoded dataset/download object")
    result_type: Literal["prose", "dataset", "download"] = Field(..., description="Shape of result")

class HealthResponse(BaseModel):
    status: str
    timestamp: str

class ErrorResponse(BaseModel):
    """Response schema for errors"""
    detail: str
