from decimal import Decimal

from django import forms
from django.forms.models import model_to_dict

from org.utils import snake_case_keys

from .models import Company, Godown, Material, Site


class PartialUpdateMixin:
    """
    PUT bodies may carry only the fields being changed. Missing fields fall back to
    the instance's current values so ModelForm validation still sees a full record.
    """

    @classmethod
    def for_update(cls, instance, data):
        merged = model_to_dict(instance, fields=cls._meta.fields)
        merged.update({k: v for k, v in data.items() if k in cls._meta.fields})
        return cls(merged, instance=instance)


class MaterialForm(PartialUpdateMixin, forms.ModelForm):
    class Meta:
        model = Material
        fields = ["name", "unit", "hsn_sac"]


class GodownForm(PartialUpdateMixin, forms.ModelForm):
    class Meta:
        model = Godown
        fields = ["name", "address"]


class SiteForm(PartialUpdateMixin, forms.ModelForm):
    class Meta:
        model = Site
        fields = ["name", "address"]


class CompanyForm(PartialUpdateMixin, forms.ModelForm):
    class Meta:
        model = Company
        fields = ["name", "gstin", "address", "contact_person", "mobile_number", "email"]


# --- Document lines (material issues here, purchase bills in billing.forms) ---


class LineItemForm(forms.Form):
    """One item row of a bill or issue."""
    material_id = forms.ModelChoiceField(
        queryset=Material.objects.all(),
        error_messages={"invalid_choice": "Material not found"},
    )
    quantity = forms.DecimalField(max_digits=14, decimal_places=3, min_value=Decimal("0.01"))
    unit = forms.CharField(max_length=32)
    rate = forms.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0"))
    gst_percent = forms.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal("0"), max_value=Decimal("100"))
    total_excl_gst = forms.DecimalField(max_digits=16, decimal_places=2, min_value=Decimal("0"))
    total_incl_gst = forms.DecimalField(max_digits=16, decimal_places=2, min_value=Decimal("0"))


def clean_line_items(items, form_class=LineItemForm):
    """
    Validate a JSON list of item rows. Returns (rows, errors); rows use snake_case keys
    with material_id resolved to a Material instance under "material".
    """
    if not isinstance(items, list) or not items:
        return [], {"items": ["At least one item is required."]}
    rows = []
    errors = {}
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            errors[str(index)] = {"__all__": ["Item must be an object."]}
            continue
        form = form_class(snake_case_keys(raw))
        if not form.is_valid():
            errors[str(index)] = {field: [str(m) for m in msgs] for field, msgs in form.errors.items()}
            continue
        row = dict(form.cleaned_data)
        row["material"] = row.pop("material_id")
        rows.append(row)
    if errors:
        return [], {"items": errors}
    return rows, {}


class MaterialIssueForm(forms.Form):
    site_id = forms.ModelChoiceField(
        queryset=Site.objects.all(),
        error_messages={"invalid_choice": "Site not found"},
    )
    from_godown_id = forms.ModelChoiceField(
        queryset=Godown.objects.all(),
        required=False,
        error_messages={"invalid_choice": "Godown not found"},
    )
    issue_date = forms.DateField()