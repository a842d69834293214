from pydantic import BaseModel, Field, field_validator
from enum import Enum
from typing import Optional, List, Dict, Any, Union

from services.bmi_calculator import BMICategory


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class BMIRequest(BaseModel):
    """
    Schema for a BMI calculation request.

    Measurements are accepted as numbers or numeric strings and are parsed by
    routers.bmi.validate_measurement, which owns the error messages.
    """
    name: Optional[str] = Field(default=None, max_length=100)
    gender: Optional[Gender] = None
    height: Optional[Union[float, str]] = None  # cm
    weight: Optional[Union[float, str]] = None  # kg
    age: Optional[Union[float, str]] = None  # years

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, value):
        value = _blank_to_none(value)
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("height", "weight", "age", mode="before")
    @classmethod
    def blank_numbers(cls, value):
        return _blank_to_none(value)


class BMIResponse(BaseModel):
    """Schema for a BMI calculation response"""
    bmi: float
    category: BMICategory
    healthTip: str
    gender: Gender
    height: float
    weight: float
    age: Optional[int] = None
    name: str
    saved: bool  # False when the record could not be persisted
    warning: Optional[str] = None


class UserRow(BaseModel):
    id: str
    name: str
    gender: str
    age: Union[int, str]  # "N/A" when unknown
    height: float
    weight: float
    currentBmi: Optional[float] = None
    currentCategory: str
    lastCalculation: Optional[str] = None
    calculationCount: int


class HistoryEntryResponse(BaseModel):
    id: str
    gender: Optional[str] = None
    height: float
    weight: float
    age: Optional[int] = None
    bmi: float
    category: str
    calculatedAt: Optional[str] = None


class UserDetail(UserRow):
    createdAt: Optional[str] = None
    bmiHistory: List[HistoryEntryResponse] = []


class UserDetailResponse(BaseModel):
    user: UserDetail


class UsersListResponse(BaseModel):
    users: List[UserRow]
    total: int
    page: int
    totalPages: int


class PaginationInfo(BaseModel):
    currentPage: int
    totalPages: int
    totalCount: int
    limit: int
    hasNextPage: bool
    hasPrevPage: bool


class CategoryOption(BaseModel):
    value: Optional[str] = None
    count: int


class GenderOption(BaseModel):
    value: str
    label: str
    count: int


class FilterOptions(BaseModel):
    categories: List[CategoryOption]
    genders: List[GenderOption]


class SortInfo(BaseModel):
    sortBy: str
    sortOrder: str


class DataTableResponse(BaseModel):
    data: List[UserRow]
    pagination: PaginationInfo
    filters: FilterOptions
    sort: SortInfo


class TableDebugInfo(BaseModel):
    appliedFilters: Dict[str, Any]
    totalRecords: int


class DatabaseTableResponse(DataTableResponse):
    debug: TableDebugInfo


class MessageResponse(BaseModel):
    message: str


class CleanupResponse(MessageResponse):
    deleted: int
