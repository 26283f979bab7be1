"""Forms for checkout, order management and the POS."""
from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField, IntegerField
from wtforms.validators import DataRequired, NumberRange, Length, Optional, Regexp, AnyOf
from storefront.forms.customer_forms import EMAIL_PATTERN


class CheckoutForm(FlaskForm):
    """Checkout options. Addresses travel as nested objects and are checked by AddressForm."""

    payment_method = StringField('Payment method', validators=[Optional(), AnyOf(['cod', 'online'])])
    coupon_code = StringField('Coupon', validators=[Optional(), Length(max=50)])
    guest_email = StringField('Email', validators=[Optional(), Regexp(EMAIL_PATTERN, message='Invalid email address')])
    notes = TextAreaField('Notes', validators=[Optional(), Length(max=1000)])
    address_id = IntegerField('Saved address', validators=[Optional()])


class OrderStatusForm(FlaskForm):
    status = StringField('Status', validators=[
        DataRequired(message='Status is required'),
        AnyOf(['pending', 'processing', 'shipped', 'delivered', 'cancelled'])
    ])
    tracking_number = StringField('Tracking number', validators=[Optional(), Length(max=100)])


class CartItemForm(FlaskForm):
    product_id = IntegerField('Product', validators=[DataRequired(message='Product is required')])
    quantity = IntegerField('Quantity', validators=[Optional(), NumberRange(min=1, message='Quantity must be at least 1')])


class PosSaleForm(FlaskForm):
    """Counter sale. `items` is passed through as a list of {product_id, quantity}."""

    payment_type = StringField('Payment type', validators=[
        DataRequired(message='Payment type is required'),
        AnyOf(['cash', 'card', 'upi', 'credit'])
    ])
    customer_id = IntegerField('Customer', validators=[Optional()])
    customer_name = StringField('Customer name', validators=[Optional(), Length(max=200)])
    customer_phone = StringField('Customer phone', validators=[Optional(), Length(max=50)])
    notes = TextAreaField('Notes', validators=[Optional(), Length(max=1000)])
