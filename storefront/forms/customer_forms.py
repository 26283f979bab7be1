"""Forms for accounts, addresses and subscription customers."""
from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, IntegerField, DecimalField, BooleanField, DateTimeField, TextAreaField
from wtforms.validators import DataRequired, NumberRange, Length, Optional, Regexp, AnyOf
from storefront.forms.catalog_forms import DATETIME_FORMATS

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
DISCOUNT_TYPES = ['percentage', 'fixed']
CUSTOMER_TYPES = ['regular', 'subscription', 'retailer', 'distributor', 'self_employed']
DELIVERY_SCHEDULES = ['weekly', 'biweekly', 'monthly']


class RegisterForm(FlaskForm):
    email = StringField('Email', validators=[
        DataRequired(message='Email is required'),
        Regexp(EMAIL_PATTERN, message='Invalid email address'),
        Length(max=255)
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required'),
        Length(min=6, message='Password must be at least 6 characters')
    ])
    first_name = StringField('First name', validators=[DataRequired(message='First name is required'), Length(max=100)])
    last_name = StringField('Last name', validators=[Optional(), Length(max=100)])
    phone = StringField('Phone', validators=[Optional(), Length(max=50)])


class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(message='Email is required')])
    password = PasswordField('Password', validators=[DataRequired(message='Password is required')])


class AddressForm(FlaskForm):
    """Shipping / billing address. GST number is optional (B2B buyers)."""

    full_name = StringField('Full name', validators=[DataRequired(message='Full name is required'), Length(max=200)])
    line1 = StringField('Address line 1', validators=[DataRequired(message='Address is required'), Length(max=255)])
    line2 = StringField('Address line 2', validators=[Optional(), Length(max=255)])
    city = StringField('City', validators=[DataRequired(message='City is required'), Length(max=100)])
    state = StringField('State', validators=[DataRequired(message='State is required'), Length(max=100)])
    postal_code = StringField('PIN code', validators=[DataRequired(message='PIN code is required'), Length(max=20)])
    country = StringField('Country', validators=[Optional(), Length(max=100)])
    phone = StringField('Phone', validators=[Optional(), Length(max=50)])
    gst_number = StringField('GSTIN', validators=[
        Optional(),
        Regexp(r'^[0-9A-Z]{15}$', message='GSTIN must be 15 characters')
    ])
    is_default = BooleanField('Default address')


class SubscriptionCustomerForm(FlaskForm):
    """Admin form for customers on subscription pricing."""

    email = StringField('Email', validators=[
        DataRequired(message='Email is required'),
        Regexp(EMAIL_PATTERN, message='Invalid email address')
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required'),
        Length(min=6, message='Password must be at least 6 characters')
    ])
    first_name = StringField('First name', validators=[DataRequired(message='First name is required'), Length(max=100)])
    last_name = StringField('Last name', validators=[Optional(), Length(max=100)])
    phone = StringField('Phone', validators=[Optional(), Length(max=50)])
    customer_type = StringField('Customer type', validators=[Optional(), AnyOf(CUSTOMER_TYPES)])
    is_active = BooleanField('Active')
    subscription_discount_type = StringField('Discount type', validators=[Optional(), AnyOf(DISCOUNT_TYPES)])
    subscription_discount_value = DecimalField('Discount', places=2, validators=[Optional(), NumberRange(min=0)])
    subscription_sale_discount_type = StringField('Sale discount type', validators=[Optional(), AnyOf(DISCOUNT_TYPES)])
    subscription_sale_discount_value = DecimalField('Sale discount', places=2, validators=[Optional(), NumberRange(min=0)])
    subscription_delivery_fee = DecimalField('Delivery fee', places=2, validators=[Optional(), NumberRange(min=0)])
    subscription_delivery_schedule = StringField('Delivery schedule', validators=[Optional(), AnyOf(DELIVERY_SCHEDULES)])
    subscription_start_date = DateTimeField('Starts', format=DATETIME_FORMATS, validators=[Optional()])
    subscription_end_date = DateTimeField('Ends', format=DATETIME_FORMATS, validators=[Optional()])
    subscription_notes = TextAreaField('Notes', validators=[Optional()])


class CategoryDiscountForm(FlaskForm):
    """Per category override of a subscription customer's discount."""

    discount_type = StringField('Discount type', validators=[Optional(), AnyOf(DISCOUNT_TYPES)])
    discount_value = DecimalField('Discount', places=2, validators=[Optional(), NumberRange(min=0)])
    sale_discount_type = StringField('Sale discount type', validators=[Optional(), AnyOf(DISCOUNT_TYPES)])
    sale_discount_value = DecimalField('Sale discount', places=2, validators=[Optional(), NumberRange(min=0)])


class DeliveryTierForm(FlaskForm):
    label = StringField('Label', validators=[DataRequired(message='Label is required'), Length(max=100)])
    up_to_weight_kg = DecimalField(
        'Up to (kg)',
        places=2,
        validators=[DataRequired(message='Weight limit is required'), NumberRange(min=0.01)]
    )
    local_fee = DecimalField('Local fee', places=2, validators=[Optional(), NumberRange(min=0)])
    pan_india_fee = DecimalField('PAN India fee', places=2, validators=[Optional(), NumberRange(min=0)])
    sort_order = IntegerField('Sort order', validators=[Optional()])
    is_active = BooleanField('Active')


class QuickCustomerForm(FlaskForm):
    """Walk-in customer created from the POS."""

    first_name = StringField('First name', validators=[DataRequired(message='First name is required'), Length(max=100)])
    last_name = StringField('Last name', validators=[Optional(), Length(max=100)])
    email = StringField('Email', validators=[Optional(), Regexp(EMAIL_PATTERN, message='Invalid email address')])
    phone = StringField('Phone', validators=[Optional(), Length(max=50)])
    customer_type = StringField('Customer type', validators=[Optional(), AnyOf(CUSTOMER_TYPES)])
