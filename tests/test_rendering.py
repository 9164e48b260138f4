"""Tests for XML template rendering."""

import pytest

from alfresco_kickstart import rendering
from alfresco_kickstart.errors import TemplateError, TemplateNotFoundError
from alfresco_kickstart.rendering import XmlTemplate, load_template, render


class TestXmlTemplate:
    """Tests for XmlTemplate."""

    def test_fields(self):
        """Test placeholder names are discovered."""
        template = XmlTemplate("t", '<a id="${id}">${body}</a>')
        assert template.fields == {"id", "body"}

    def test_render(self):
        """Test all placeholders are substituted."""
        template = XmlTemplate("t", '<a id="${id}">${body}</a>')
        assert template.render(id="x", body="<b/>") == '<a id="x"><b/></a>'

    def test_values_not_escaped(self):
        """Test values are inserted verbatim."""
        template = XmlTemplate("t", "<a>${body}</a>")
        assert template.render(body="<p>&amp;</p>") == "<a><p>&amp;</p></a>"

    def test_booleans_lowercase(self):
        """Test booleans render as XML booleans."""
        template = XmlTemplate("t", "${flag}")
        assert template.render(flag=True) == "true"
        assert template.render(flag=False) == "false"

    def test_missing_value(self):
        """Test a missing value is an error."""
        template = XmlTemplate("t", "${a}${b}")
        with pytest.raises(TemplateError) as exc_info:
            template.render(a="1")
        assert exc_info.value.missing == {"b"}

    def test_unexpected_value(self):
        """Test an unused value is an error."""
        template = XmlTemplate("t", "${a}")
        with pytest.raises(TemplateError) as exc_info:
            template.render(a="1", b="2")
        assert exc_info.value.unexpected == {"b"}

    def test_escaped_dollar(self):
        """Test $$ renders a literal dollar sign."""
        template = XmlTemplate("t", "activiti$$${id}")
        assert template.fields == {"id"}
        assert template.render(id="x") == "activiti$x"


class TestLoadTemplate:
    """Tests for packaged templates."""

    @pytest.mark.parametrize("name", rendering.TEMPLATE_NAMES)
    def test_all_templates_load(self, name):
        """Test every template ships with the package."""
        template = load_template(name)
        assert template.name == name
        assert template.fields

    def test_cached(self):
        """Test templates are read once."""
        assert load_template(rendering.TASK_MODEL) is load_template(rendering.TASK_MODEL)

    def test_missing_template(self):
        """Test a missing resource raises TemplateNotFoundError."""
        with pytest.raises(TemplateNotFoundError):
            load_template("no-such-template")

    def test_property_template(self):
        """Test the task model property fragment."""
        xml = render(rendering.TASK_MODEL_PROPERTY, name="ks:amount", type="d:long", mandatory=True)
        assert xml.strip() == (
            '<property name="ks:amount"><type>d:long</type><mandatory>true</mandatory></property>'
        )

    def test_form_config_condition(self):
        """Test the module binds to the engine-qualified workflow id."""
        xml = render(rendering.FORM_CONFIG, module_id="m", workflow_id="expense_approval", evaluator_configs="")
        assert 'condition="activiti$expense_approval"' in xml
        assert "<id>m</id>" in xml

    def test_name_placeholder(self):
        """Test a placeholder called name doesn't clash with the template argument."""
        xml = render(rendering.FORM_CONFIG_FIELD, name="ks:customer_name", label="Customer Name")
        assert xml.strip() == '<field id="ks:customer_name" label="Customer Name"/>'

    def test_self_placeholder(self):
        """Test any placeholder name can be passed as a keyword."""
        assert XmlTemplate("t", "${self}").render(self="x") == "x"
