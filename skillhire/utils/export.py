"""
Utility functions for exporting data to CSV format.
Used by employers to export the applications to one of their jobs.
"""

import csv
import io
from datetime import datetime
from typing import Any, Dict, List, Optional


def _format_date(value: Any) -> str:
    return value.strftime('%Y-%m-%d %H:%M:%S') if isinstance(value, datetime) else ''


def export_applications_to_csv(
    job: Dict[str, Any],
    applications: List[Dict[str, Any]],
    candidates: Optional[Dict[str, Dict[str, Any]]] = None,
) -> str:
    """
    Export a job's applications to CSV format.

    Args:
        job: The job document the applications belong to
        applications: Application documents
        candidates: Person documents keyed by Clerk ID, for names and e-mails

    Returns:
        CSV string ready to be downloaded
    """

    candidates = candidates or {}
    output = io.StringIO()

    fieldnames = [
        'Application ID',
        'Candidate Name',
        'Candidate Email',
        'Job Title',
        'Status',
        'Submitted Date',
        'Technical Skills',
        'Total Experience Years',
        'Projects',
        'Resume URL',
    ]

    writer = csv.DictWriter(output, fieldnames=fieldnames)
    writer.writeheader()

    for app in applications:
        person = candidates.get(app.get('candidate_id'), {})
        profile = person.get('profile') or {}
        name = f"{profile.get('first_name', '')} {profile.get('last_name', '')}".strip()
        skills = (app.get('skills') or {}).get('technical') or []
        experience = app.get('experience') or {}

        writer.writerow({
            'Application ID': str(app.get('_id', '')),
            'Candidate Name': name,
            'Candidate Email': person.get('email', ''),
            'Job Title': job.get('title', ''),
            'Status': app.get('status', ''),
            'Submitted Date': _format_date(app.get('submitted_at')),
            'Technical Skills': ', '.join(skills),
            'Total Experience Years': experience.get('total_years', ''),
            'Projects': len(app.get('projects') or []),
            'Resume URL': app.get('resume_url') or '',
        })

    csv_string = output.getvalue()
    output.close()

    return csv_string


def create_csv_response_headers(filename: str) -> Dict[str, str]:
    """
    Create headers for CSV file download response.

    Args:
        filename: Name of the CSV file (without .csv extension)

    Returns:
        Dictionary of headers for FastAPI Response
    """

    return {
        "Content-Disposition": f"attachment; filename={filename}.csv",
    }
