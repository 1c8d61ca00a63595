from typing import Optional

from .schemas import EmployeeRead, EventContext, RenderedMessage, TemplateRead

EMPLOYEE_NAME = "{EmployeeName}"
YEARS_COMPLETED = "{YearsCompleted}"
FESTIVAL_NAME = "{FestivalName}"


def _substitute(text: str, employee: EmployeeRead, context: EventContext) -> str:
    text = text.replace(EMPLOYEE_NAME, employee.full_name)
    if context.years_completed is not None:
        text = text.replace(YEARS_COMPLETED, str(context.years_completed))
    if context.festival_name:
        text = text.replace(FESTIVAL_NAME, context.festival_name)
    return text


def render(template: TemplateRead, employee: EmployeeRead, context: Optional[EventContext] = None) -> RenderedMessage:
    """Fill template placeholders. Unknown placeholders are left as written."""
    context = context or EventContext()
    subject = _substitute(template.subject, employee, context) if template.subject else None
    return RenderedMessage(subject=subject, body=_substitute(template.body, employee, context))
