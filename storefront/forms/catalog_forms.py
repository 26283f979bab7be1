"""Admin forms for catalog management."""
from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField, IntegerField, DecimalField, BooleanField, DateTimeField
from wtforms.validators import DataRequired, NumberRange, Length, Optional, AnyOf

DATETIME_FORMATS = ['%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M', '%Y-%m-%d %H:%M:%S', '%Y-%m-%d']


class CategoryForm(FlaskForm):
    """Form for creating or editing a category."""

    name = StringField('Name', validators=[DataRequired(message='Name is required'), Length(max=150)])
    slug = StringField('Slug', validators=[Optional(), Length(max=160)])
    description = TextAreaField('Description', validators=[Optional()])
    image_url = StringField('Image URL', validators=[Optional(), Length(max=500)])
    banner_url = StringField('Banner URL', validators=[Optional(), Length(max=500)])
    parent_id = IntegerField('Parent', validators=[Optional()])
    position = IntegerField('Position', validators=[Optional(), NumberRange(min=0)])
    is_active = BooleanField('Active')


class ProductForm(FlaskForm):
    """Form for creating or editing a product."""

    sku = StringField('SKU', validators=[DataRequired(message='SKU is required'), Length(max=100)])
    title = StringField('Title', validators=[DataRequired(message='Title is required'), Length(max=255)])
    slug = StringField('Slug', validators=[Optional(), Length(max=280)])
    category_id = IntegerField('Category', validators=[Optional()])
    short_desc = TextAreaField('Short description', validators=[Optional()])
    long_desc = TextAreaField('Description', validators=[Optional()])
    image_url = StringField('Image URL', validators=[Optional(), Length(max=500)])
    price = DecimalField(
        'Price',
        places=2,
        validators=[DataRequired(message='Price is required'), NumberRange(min=0.01, message='Price must be greater than 0')]
    )
    sale_price = DecimalField('Sale price', places=2, validators=[Optional(), NumberRange(min=0)])
    sale_price_start = DateTimeField('Sale starts', format=DATETIME_FORMATS, validators=[Optional()])
    sale_price_end = DateTimeField('Sale ends', format=DATETIME_FORMATS, validators=[Optional()])
    gst_rate = DecimalField('GST %', places=2, validators=[Optional(), NumberRange(min=0, max=100)])
    stock = IntegerField('Stock', validators=[Optional(), NumberRange(min=0, message='Stock cannot be negative')])
    low_stock_threshold = IntegerField('Low stock threshold', validators=[Optional(), NumberRange(min=0)])
    allow_backorder = BooleanField('Allow backorder')
    weight = DecimalField('Weight (kg)', places=3, validators=[Optional(), NumberRange(min=0)])
    is_featured = BooleanField('Featured')
    is_trending = BooleanField('Trending')
    is_new_arrival = BooleanField('New arrival')
    is_on_sale = BooleanField('On sale')
    is_active = BooleanField('Active')


class CouponForm(FlaskForm):
    """Form for creating or editing a coupon. Its scope is derived, never sent."""

    code = StringField('Code', validators=[DataRequired(message='Code is required'), Length(max=50)])
    type = StringField('Type', validators=[DataRequired(message='Type is required'), AnyOf(['percentage', 'fixed'])])
    amount = DecimalField(
        'Amount',
        places=2,
        validators=[DataRequired(message='Amount is required'), NumberRange(min=0.01, message='Amount must be greater than 0')]
    )
    min_cart_total = DecimalField('Minimum cart total', places=2, validators=[Optional(), NumberRange(min=0)])
    min_quantity = IntegerField('Minimum quantity', validators=[Optional(), NumberRange(min=1)])
    max_uses = IntegerField('Maximum uses', validators=[Optional(), NumberRange(min=1)])
    product_id = IntegerField('Product', validators=[Optional()])
    description = TextAreaField('Description', validators=[Optional(), Length(max=500)])
    is_active = BooleanField('Active')
    expires_at = DateTimeField('Expires', format=DATETIME_FORMATS, validators=[Optional()])
