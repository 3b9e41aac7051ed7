"""
Character Sheet - plain-text summary of a finished Traveller.

Dependencies: pip install jinja2
"""

from pathlib import Path
from typing import Union, Any, Dict
from jinja2 import Environment, BaseLoader, FileSystemLoader

from character_model import FinalCharacter


class CharacterSheet:
    def __init__(self, template_path: str = None):
        self.template_path = template_path
        self._template = None

    @property
    def template(self):
        if self._template is None:
            if self.template_path:
                template_dir = Path(self.template_path).parent
                template_name = Path(self.template_path).name
                env = Environment(loader=FileSystemLoader(str(template_dir)), trim_blocks=True)
                self._template = env.get_template(template_name)
            else:
                env = Environment(loader=BaseLoader(), trim_blocks=True)
                self._template = env.from_string(DEFAULT_TEMPLATE)
        return self._template

    def _context(self, character: Union[FinalCharacter, Dict[str, Any]]) -> Dict[str, Any]:
        data = character.to_dict() if isinstance(character, FinalCharacter) else dict(character)
        data.setdefault("name", "")
        data.setdefault("skills", [])
        data.setdefault("characteristics", {})
        data.setdefault("history", [])
        return data

    def render(self, character: Union[FinalCharacter, Dict[str, Any]]) -> str:
        return self.template.render(c=self._context(character))

    def save(self, character: Union[FinalCharacter, Dict[str, Any]], output_path: Union[str, Path]) -> None:
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(self.render(character))


def render_summary(character: Union[FinalCharacter, Dict[str, Any]]) -> str:
    """Render a character with the built-in template."""
    return CharacterSheet().render(character)


# Template stored in separate variable for readability
DEFAULT_TEMPLATE = """\
=== {{ c.name or '(unnamed Traveller)' }} ===
{{ c.species }} {{ c.career }} ({{ c.background }} background)
Age {{ c.age }}  Terms {{ c.terms }}  {{ c.rank }}  Cr{{ c.credits }}

Characteristics
{% for key, score in c.characteristics.items() %}
  {{ key }} {{ '%2d' % score.total }}{% if score.modifier %}  ({{ '%+d' % score.modifier }} background){% endif %}{% if score.bonus %}  ({{ '%+d' % score.bonus }} benefit){% endif %}

{% endfor %}

Skills
{% for skill in c.skills %}
  {{ skill.name }}-{{ skill.level }}
{% endfor %}
{% if c.benefits %}

Benefits
{% for benefit in c.benefits %}
  - {{ benefit }}
{% endfor %}
{% endif %}
{% if c.equipment %}

Equipment
{% for item in c.equipment %}
  - {{ item }}
{% endfor %}
{% endif %}
{% if c.history %}

History
{% for event in c.history %}
  * {{ event.title }}{% if event.detail %}: {{ event.detail }}{% endif %}

{% endfor %}
{% endif %}
"""
