"""Forms for the shortsfeed app.

The feed endpoint takes its channel selector and options from the query
string; this form validates them before any network work happens.
"""

from __future__ import annotations

from django import forms

MISSING_SOURCE_MESSAGE = (
    'You must specify either:\n'
    ' - a username (?u=...)\n'
    ' - a channel id (?c=...)\n'
    ' - a custom channel name (?custom=...)'
)


class FeedQueryForm(forms.Form):
    """Query parameters accepted by the shorts feed."""

    u = forms.CharField(
        required=False,
        max_length=200,
        label='Username',
        help_text='Legacy channel username, e.g. LinusTechTips.',
    )
    c = forms.CharField(
        required=False,
        max_length=200,
        label='Channel id',
        help_text='Channel id, e.g. UCw38-8_Ibv_L6hlKChHO9dQ.',
    )
    custom = forms.CharField(
        required=False,
        max_length=200,
        label='Custom name',
        help_text='Custom channel name or @handle.',
    )
    item_limit = forms.IntegerField(
        required=False,
        min_value=1,
        label='Upper limit of items',
        help_text='Upper limit of how many items should be returned, 99 by default.',
    )
    format = forms.ChoiceField(
        required=False,
        choices=[('rss', 'RSS 2.0'), ('atom', 'Atom')],
        label='Feed format',
    )

    def clean(self) -> dict[str, object]:  # type: ignore[override]
        cleaned_data = super().clean()
        if not (cleaned_data.get('u') or cleaned_data.get('c') or cleaned_data.get('custom')):
            raise forms.ValidationError(MISSING_SOURCE_MESSAGE)
        cleaned_data['format'] = cleaned_data.get('format') or 'rss'
        return cleaned_data
