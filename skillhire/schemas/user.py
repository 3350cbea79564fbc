from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr

Role = Literal["employer", "candidate"]


class CandidateProfile(BaseModel):
    skills: List[str] = []
    experience: Optional[str] = None
    availability: Optional[str] = None
    location: Optional[str] = None
    languages: List[str] = []
    github_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    resume_url: Optional[str] = None


class EmployerProfile(BaseModel):
    company_name: Optional[str] = None
    company_size: Optional[str] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    company_description: Optional[str] = None
    location: Optional[str] = None
    company_logo: Optional[str] = None


class ProfileIn(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_picture: Optional[str] = None
    bio: Optional[str] = None
    candidate_profile: Optional[CandidateProfile] = None
    employer_profile: Optional[EmployerProfile] = None


# 1. Registration / onboarding (Input)
class UserCreate(BaseModel):
    email: EmailStr
    role: Role
    profile: Optional[ProfileIn] = None


# 2. Profile edits (Input). role may be repeated, never changed.
class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    onboarding_completed: Optional[bool] = None
    profile: Optional[ProfileIn] = None


class CreateEmployerRequest(BaseModel):
    email: str


class CheckEmailRequest(BaseModel):
    email: str
    role: Role
