# ========================================
# skillhire/schemas/application.py
# ========================================

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Project(BaseModel):
    title: str
    description: Optional[str] = None
    github_url: Optional[str] = None
    live_url: Optional[str] = None
    technologies: List[str] = []


class ApplicationSkills(BaseModel):
    technical: List[str] = []
    soft: List[str] = []


class PreviousRole(BaseModel):
    title: Optional[str] = None
    company: Optional[str] = None
    duration: Optional[str] = None


class ApplicationExperience(BaseModel):
    total_years: float = 0
    relevant_years: float = 0
    previous_roles: List[PreviousRole] = []


# 1. Input: candidate applies
class ApplicationCreate(BaseModel):
    job_id: str = Field(..., min_length=1)
    cover_letter: Optional[str] = None
    resume_url: Optional[str] = None
    projects: List[Project] = []
    skills: Optional[ApplicationSkills] = None
    experience: Optional[ApplicationExperience] = None
    evaluation: Optional[Dict[str, Any]] = None  # opaque, stored as sent


# 2. Input: employer moves the application along
class ApplicationStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)
