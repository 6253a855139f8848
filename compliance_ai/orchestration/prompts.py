"""Prompt construction for document generation and quality analysis."""
from .models import CompanyProfile, DocumentTemplate

DOCUMENT_SECTIONS = (
    "Executive Summary",
    "Purpose and Scope",
    "Policy/Procedure Statement",
    "Roles and Responsibilities",
    "Implementation Guidelines",
    "Technical Controls and Safeguards",
    "Compliance Requirements and Metrics",
    "Monitoring and Review Procedures",
    "Training and Awareness Requirements",
    "Related Documents and References",
    "Appendices",
)


def _target_audience(template: DocumentTemplate) -> str:
    if "policy" in template.category.lower() or template.document_type.lower() == "policy":
        return "All employees and stakeholders"
    return "Technical and security teams"


def build_document_prompt(template: DocumentTemplate,
                          profile: CompanyProfile,
                          framework: str) -> str:
    """Build the generation prompt for one template and company profile."""
    cloud = ", ".join(profile.cloud_infrastructure) or "Not specified"
    frameworks = ", ".join(profile.compliance_frameworks) or "New to compliance"
    sections = "\n".join(f"{i}. {name}" for i, name in enumerate(DOCUMENT_SECTIONS, start=1))

    return (
        f"You are a cybersecurity compliance expert specializing in {framework}. "
        f"Generate comprehensive, professional compliance documentation that meets "
        f"industry standards and regulatory requirements.\n\n"
        f"Company Profile Context:\n"
        f"- Company: {profile.company_name}\n"
        f"- Industry: {profile.industry}\n"
        f"- Size: {profile.company_size} employees\n"
        f"- Headquarters: {profile.headquarters or 'Not specified'}\n"
        f"- Cloud Infrastructure: {cloud}\n"
        f"- Data Classification: {profile.data_classification}\n"
        f"- Business Applications: {profile.business_applications or 'Not specified'}\n"
        f"- Compliance Frameworks: {frameworks}\n\n"
        f"Document Requirements:\n"
        f"- Title: {template.title}\n"
        f"- Description: {template.description}\n"
        f"- Category: {template.category}\n"
        f"- Framework: {framework}\n"
        f"- Target Audience: {_target_audience(template)}\n\n"
        f"Generate a complete document with the following structure:\n"
        f"{sections}\n\n"
        f"Format as a structured document with clear headings and numbered sections."
    )


def build_quality_prompt(content: str, framework: str) -> str:
    """Build the prompt asking a provider for a JSON quality assessment."""
    return (
        f"You are a compliance quality assessor specializing in {framework} documentation. "
        f"Analyze the provided document and provide a quality score (1-100) along with "
        f"specific feedback and improvement suggestions.\n\n"
        f"Evaluation Criteria:\n"
        f"- Completeness: All required sections and elements present\n"
        f"- Accuracy: Technically correct and framework-compliant\n"
        f"- Clarity: Clear, understandable language for target audience\n"
        f"- Actionability: Specific, implementable guidance\n"
        f"- Risk Coverage: Comprehensive risk identification and mitigation\n\n"
        f"Respond in JSON format with:\n"
        f'{{"score": number (1-100), "feedback": "assessment", '
        f'"suggestions": ["recommendation 1", "recommendation 2"]}}\n\n'
        f"Analyze this {framework} document:\n\n{content}"
    )
