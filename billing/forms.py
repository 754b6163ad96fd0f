from django import forms

from inventory.forms import LineItemForm
from inventory.models import Company, Godown, Site

from .destinations import destination_for
from .models import DeliveredTo


class BillItemForm(LineItemForm):
    location_in_godown = forms.CharField(max_length=100, required=False)


class PurchaseBillForm(forms.Form):
    """Bill header. clean() resolves delivered_to_type/_id into a destination variant."""
    company_id = forms.ModelChoiceField(
        queryset=Company.objects.all(),
        error_messages={"invalid_choice": "Company not found"},
    )
    invoice_number = forms.CharField(max_length=64)
    gstin_number = forms.CharField(max_length=20, required=False)
    bill_date = forms.DateField()
    delivered_to_type = forms.ChoiceField(choices=DeliveredTo.choices)
    delivered_to_id = forms.IntegerField()

    def clean(self):
        data = super().clean()
        kind = data.get("delivered_to_type")
        target_id = data.get("delivered_to_id")
        if kind and target_id is not None:
            model = Godown if kind == DeliveredTo.GODOWN else Site
            target = model.objects.filter(pk=target_id).first()
            if target is None:
                self.add_error("delivered_to_id", f"{model._meta.verbose_name.title()} not found")
            else:
                data["destination"] = destination_for(kind, target)
        return data
