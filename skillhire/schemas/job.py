# ========================================
# skillhire/schemas/job.py
# ========================================

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

JobType = Literal["full-time", "part-time", "contract", "internship"]
ExperienceLevel = Literal["entry", "mid", "senior", "lead"]
Complexity = Literal["low", "medium", "high"]
ProjectScale = Literal["small", "medium", "large"]


class Experience(BaseModel):
    min: int = 0
    max: int = 10
    level: ExperienceLevel = "mid"


class Salary(BaseModel):
    min: int = 0
    max: int = 0
    currency: str = "USD"


class ProjectEvaluationCriteria(BaseModel):
    required_project_types: List[str] = []
    minimum_project_complexity: Complexity = "medium"
    required_technologies: List[str] = []
    preferred_project_features: List[str] = []
    project_scale: ProjectScale = "medium"


# 1. Input: What the Employer sends
class JobCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    company_id: Optional[str] = None  # must be the caller when given
    company_name: Optional[str] = None
    company_logo: Optional[str] = None
    requirements: List[str] = []
    preferred_skills: List[str] = []
    required_skills: List[str] = []
    experience: Optional[Experience] = None
    location: Optional[str] = None
    remote: Optional[bool] = None
    job_type: Optional[JobType] = None
    salary: Optional[Salary] = None
    benefits: List[str] = []
    tags: List[str] = []
    project_evaluation_criteria: Optional[ProjectEvaluationCriteria] = None
    career_site_url: Optional[str] = None
    use_career_site: bool = False
    plan_type: Literal["basic", "premium"] = "basic"


# 2. Input: Owner edits. Commercial fields are not part of this schema.
class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    company_name: Optional[str] = None
    company_logo: Optional[str] = None
    requirements: Optional[List[str]] = None
    preferred_skills: Optional[List[str]] = None
    required_skills: Optional[List[str]] = None
    experience: Optional[Experience] = None
    location: Optional[str] = None
    remote: Optional[bool] = None
    job_type: Optional[JobType] = None
    salary: Optional[Salary] = None
    benefits: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    project_evaluation_criteria: Optional[ProjectEvaluationCriteria] = None
    career_site_url: Optional[str] = None
    use_career_site: Optional[bool] = None
    status: Optional[Literal["active", "paused", "closed"]] = None


# 3. Output
class FreeJobsCount(BaseModel):
    free_jobs_remaining: int
    total_jobs_posted: int
    is_eligible_for_free: bool
