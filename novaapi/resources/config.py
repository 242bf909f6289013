import os
from typing import Dict
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from novaapi.reconcile.interfaces import ConfigRenderer

OVERRIDE_DOCUMENT = "03-nova-override.conf"


class TemplateConfigRenderer(ConfigRenderer):
    """Renders every template under `<templates_dir>/<template set>/config`."""

    def __init__(self, templates_dir: str):
        self.templates_dir = templates_dir
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def template_names(self, template_set: str):
        config_dir = os.path.join(self.templates_dir, template_set, "config")
        return sorted(
            name
            for name in os.listdir(config_dir)
            if os.path.isfile(os.path.join(config_dir, name))
        )

    async def render(
        self,
        template_set: str,
        override_text: str,
        params: Dict[str, object],
        extra_documents: Dict[str, str] = None,
    ) -> Dict[str, str]:
        documents = {}
        for name in self.template_names(template_set):
            tmpl = self.env.get_template(f"{template_set}/config/{name}")
            documents[name] = tmpl.render(**params)
        documents[OVERRIDE_DOCUMENT] = override_text or ""
        for name, content in (extra_documents or {}).items():
            documents.setdefault(name, content)
        return documents
