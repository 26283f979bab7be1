"""Forms for the service booking vertical."""
from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, TextAreaField, IntegerField, DecimalField, BooleanField
from wtforms.validators import DataRequired, NumberRange, Length, Optional, Regexp
from storefront.forms.customer_forms import EMAIL_PATTERN

TIME_PATTERN = r'^([01]\d|2[0-3]):[0-5]\d$'


class LocationForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(message='Name is required'), Length(max=100)])
    code = StringField('Code', validators=[Optional(), Length(max=5)])
    postal_code = StringField('Postal code', validators=[Optional(), Length(max=20)])
    country_id = IntegerField('Country', validators=[Optional()])
    state_id = IntegerField('State', validators=[Optional()])
    city_id = IntegerField('City', validators=[Optional()])


class ServiceOfferingForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(message='Name is required'), Length(max=150)])
    description = TextAreaField('Description', validators=[Optional()])
    duration_minutes = IntegerField('Duration (minutes)', validators=[Optional(), NumberRange(min=1)])
    base_price = DecimalField('Base price', places=2, validators=[Optional(), NumberRange(min=0)])
    is_active = BooleanField('Active')


class ProviderForm(FlaskForm):
    """Provider account. `service_ids` is passed through as a list."""

    name = StringField('Name', validators=[DataRequired(message='Name is required'), Length(max=200)])
    email = StringField('Email', validators=[
        DataRequired(message='Email is required'),
        Regexp(EMAIL_PATTERN, message='Invalid email address')
    ])
    password = PasswordField('Password', validators=[
        Optional(),
        Length(min=6, message='Password must be at least 6 characters')
    ])
    phone = StringField('Phone', validators=[Optional(), Length(max=50)])
    bio = TextAreaField('Bio', validators=[Optional()])
    city_id = IntegerField('City', validators=[Optional()])
    locality_id = IntegerField('Locality', validators=[Optional()])
    is_active = BooleanField('Active')
    is_approved = BooleanField('Approved')


class SlotForm(FlaskForm):
    service_id = IntegerField('Service', validators=[DataRequired(message='Service is required')])
    slot_date = StringField('Date', validators=[
        DataRequired(message='Date is required'),
        Regexp(r'^\d{4}-\d{2}-\d{2}$', message='Use YYYY-MM-DD')
    ])
    start_time = StringField('Start', validators=[
        DataRequired(message='Start time is required'),
        Regexp(TIME_PATTERN, message='Use HH:MM')
    ])
    end_time = StringField('End', validators=[
        DataRequired(message='End time is required'),
        Regexp(TIME_PATTERN, message='Use HH:MM')
    ])
    capacity = IntegerField('Capacity', validators=[Optional(), NumberRange(min=1, message='Capacity must be at least 1')])


class BookingForm(FlaskForm):
    customer_name = StringField('Name', validators=[Optional(), Length(max=200)])
    customer_phone = StringField('Phone', validators=[Optional(), Length(max=50)])
    customer_email = StringField('Email', validators=[Optional(), Regexp(EMAIL_PATTERN, message='Invalid email address')])
    address = TextAreaField('Address', validators=[Optional()])
    locality_id = IntegerField('Locality', validators=[Optional()])
    notes = TextAreaField('Notes', validators=[Optional(), Length(max=1000)])
