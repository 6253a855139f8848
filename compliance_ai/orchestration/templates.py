"""
Document template catalog.

Ships a built-in set of core documents per framework and can be extended
or replaced from a YAML file of the form::

    SOC2:
      - id: soc2-001
        title: Information Security Policy
        category: policy
        document_type: policy
"""
import logging
from typing import Dict, Iterable, List, Optional

import yaml
from pydantic import ValidationError

from ..utils.exceptions import ConfigurationError, TemplateNotFoundError
from .models import DocumentTemplate

logger = logging.getLogger(__name__)


def _t(template_id: str, title: str, framework: str, category: str, document_type: str,
       description: str = "", priority: int = 1, required: bool = True) -> DocumentTemplate:
    return DocumentTemplate(
        id=template_id, title=title, description=description, framework=framework,
        category=category, document_type=document_type, priority=priority,
        required=required,
    )


BUILTIN_TEMPLATES: Dict[str, List[DocumentTemplate]] = {
    "ISO27001": [
        _t("iso-001", "ISMS Scope Document", "ISO27001", "management", "standard",
           "Boundaries and applicability of the ISMS (Clause 4.3)"),
        _t("iso-002", "Information Security Policy", "ISO27001", "policy", "policy",
           "Top-level information security commitments (Clause 5.2)"),
        _t("iso-003", "Risk Assessment and Treatment Plan", "ISO27001", "risk_management",
           "assessment", "Risk methodology, register and treatment (Clauses 6.1.2, 6.1.3)"),
        _t("iso-004", "Statement of Applicability", "ISO27001", "controls", "control",
           "Annex A control applicability and justification", priority=2),
        _t("iso-005", "Incident Response Procedure", "ISO27001", "incident_response",
           "procedure", "Handling of information security incidents (A.5.24-A.5.28)", priority=2),
    ],
    "SOC2": [
        _t("soc2-001", "Security Controls Framework", "SOC2", "controls", "framework",
           "Trust Services Criteria control set"),
        _t("soc2-002", "Information Security Policy", "SOC2", "policy", "policy",
           "Security commitments supporting CC1-CC9"),
        _t("soc2-003", "Risk Assessment Report", "SOC2", "risk_management", "assessment",
           "Annual risk assessment (CC3)"),
        _t("soc2-004", "Change Management Procedure", "SOC2", "operations", "procedure",
           "Authorization and testing of changes (CC8)", priority=2),
        _t("soc2-005", "Vendor Management Policy", "SOC2", "vendor_management", "policy",
           "Third-party risk oversight (CC9)", priority=3, required=False),
    ],
    "NIST": [
        _t("nist-001", "Security and Privacy Program Policy", "NIST", "policy", "policy",
           "Program management controls (PM family)"),
        _t("nist-002", "Access Control Standard", "NIST", "access_control", "standard",
           "AC family implementation"),
        _t("nist-003", "Security Assessment Plan", "NIST", "assessment", "assessment",
           "Control assessment approach (CA family)"),
        _t("nist-004", "Contingency Plan", "NIST", "contingency", "plan",
           "Recovery of systems after disruption (CP family)", priority=2),
    ],
    "FedRAMP": [
        _t("fedramp-001", "System Security Plan (SSP)", "FedRAMP", "system_documentation",
           "plan", "Authorization boundary and control implementation"),
        _t("fedramp-002", "Incident Response Plan", "FedRAMP", "incident_response", "plan",
           "IR family procedures and US-CERT reporting"),
        _t("fedramp-003", "Configuration Management Plan", "FedRAMP", "configuration",
           "plan", "Baselines and change control (CM family)", priority=2),
        _t("fedramp-004", "Continuous Monitoring Strategy", "FedRAMP", "monitoring",
           "procedure", "Ongoing assessment and POA&M handling", priority=2),
    ],
}


def _normalize(framework: str) -> str:
    return "".join(ch for ch in framework.upper() if ch.isalnum())


class TemplateCatalog:
    """Framework keyed lookup of document templates"""

    def __init__(self, templates: Optional[Dict[str, Iterable[DocumentTemplate]]] = None):
        source = BUILTIN_TEMPLATES if templates is None else templates
        self._templates: Dict[str, List[DocumentTemplate]] = {}
        self._names: Dict[str, str] = {}
        for framework, items in source.items():
            self.register(framework, items)

    def register(self, framework: str, templates: Iterable[DocumentTemplate]):
        """Add templates for a framework, keeping priority order"""
        key = _normalize(framework)
        merged = self._templates.get(key, []) + list(templates)
        merged.sort(key=lambda t: t.priority)
        self._templates[key] = merged
        self._names.setdefault(key, framework)

    @classmethod
    def from_yaml(cls, path: str, include_builtin: bool = True) -> 'TemplateCatalog':
        """Load templates from a YAML mapping of framework to template list"""
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigurationError(f"Template file {path} must map frameworks to lists")

        catalog = cls() if include_builtin else cls(templates={})
        try:
            for framework, items in data.items():
                catalog.register(framework, [
                    DocumentTemplate(**{"framework": framework, **item}) for item in items or []
                ])
        except (TypeError, ValidationError) as e:
            raise ConfigurationError(f"Invalid template definition in {path}: {e}") from e

        logger.info(f"Loaded templates for {len(data)} frameworks from {path}")
        return catalog

    def get_templates(self, framework: str) -> List[DocumentTemplate]:
        """Templates for a framework in generation order"""
        templates = self._templates.get(_normalize(framework))
        if not templates:
            raise TemplateNotFoundError(f"No templates found for framework: {framework}")
        return list(templates)

    def get_template(self, template_id: str) -> DocumentTemplate:
        for templates in self._templates.values():
            for template in templates:
                if template.id == template_id:
                    return template
        raise TemplateNotFoundError(f"Template not found: {template_id}")

    def required_templates(self, framework: str) -> List[DocumentTemplate]:
        return [t for t in self.get_templates(framework) if t.required]

    def frameworks(self) -> List[str]:
        return [self._names[key] for key in self._templates]
