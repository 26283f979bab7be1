"""Admin forms for banners, home blocks and combo offers."""
from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField, IntegerField, DecimalField, BooleanField, SelectField, DateTimeField
from wtforms.validators import DataRequired, NumberRange, Length, Optional
from storefront.forms.catalog_forms import DATETIME_FORMATS


class BannerForm(FlaskForm):
    """Form for hero and section banners."""

    type = SelectField('Type', choices=[('hero', 'Hero'), ('section', 'Section')], default='hero')
    title = StringField('Title', validators=[Optional(), Length(max=255)])
    subtitle = StringField('Subtitle', validators=[Optional(), Length(max=500)])
    image_url = StringField('Image URL', validators=[DataRequired(message='Image is required'), Length(max=500)])
    mobile_image_url = StringField('Mobile image URL', validators=[Optional(), Length(max=500)])
    link_url = StringField('Link', validators=[Optional(), Length(max=500)])
    button_text = StringField('Button text', validators=[Optional(), Length(max=100)])
    target_block_id = IntegerField('Target block', validators=[Optional()])
    relative_placement = SelectField('Placement', choices=[('above', 'Above'), ('below', 'Below')], default='below')
    display_width = SelectField(
        'Width',
        choices=[('25', '25%'), ('50', '50%'), ('75', '75%'), ('100', '100%')],
        coerce=int,
        default=100
    )
    alignment = SelectField(
        'Alignment',
        choices=[('left', 'Left'), ('center', 'Center'), ('right', 'Right')],
        default='center'
    )
    position = IntegerField('Position', validators=[Optional(), NumberRange(min=0)])
    is_active = BooleanField('Active')


class HomeBlockForm(FlaskForm):
    """Form for home page blocks. The `payload` object is passed through as JSON."""

    type = SelectField(
        'Type',
        choices=[
            ('featured_products', 'Featured products'),
            ('category_products', 'Category products'),
            ('promo_html', 'Promo HTML'),
            ('banner_carousel', 'Banner carousel'),
            ('custom_code', 'Custom code'),
        ]
    )
    title = StringField('Title', validators=[Optional(), Length(max=255)])
    position = IntegerField('Position', validators=[Optional(), NumberRange(min=0)])
    is_active = BooleanField('Active')


class ComboOfferForm(FlaskForm):
    """Form for combo offers. `product_ids` is passed through as a list."""

    title = StringField('Title', validators=[DataRequired(message='Title is required'), Length(max=255)])
    slug = StringField('Slug', validators=[Optional(), Length(max=280)])
    description = TextAreaField('Description', validators=[Optional()])
    image_url = StringField('Image URL', validators=[Optional(), Length(max=500)])
    combo_price = DecimalField(
        'Combo price',
        places=2,
        validators=[DataRequired(message='Combo price is required'), NumberRange(min=0.01, message='Combo price must be greater than 0')]
    )
    position = IntegerField('Position', validators=[Optional(), NumberRange(min=0)])
    is_active = BooleanField('Active')
    start_date = DateTimeField('Starts', format=DATETIME_FORMATS, validators=[Optional()])
    end_date = DateTimeField('Ends', format=DATETIME_FORMATS, validators=[Optional()])


class CategorySectionForm(FlaskForm):
    """Settings of the home "shop by category" section. `categories` is validated per tile."""

    title = StringField('Title', validators=[Optional(), Length(max=255)])
    subtitle = StringField('Subtitle', validators=[Optional(), Length(max=500)])
    is_visible = BooleanField('Visible')
    position = IntegerField('Position', validators=[Optional(), NumberRange(min=0)])


class CategoryTileForm(FlaskForm):
    """One category tile of the home "shop by category" section."""

    category_id = IntegerField('Category', validators=[DataRequired(message='Category is required')])
    custom_label = StringField('Label', validators=[Optional(), Length(max=255)])
    image_url = StringField('Image URL', validators=[Optional(), Length(max=500)])
    position = IntegerField('Position', validators=[Optional(), NumberRange(min=0)])
    is_visible = BooleanField('Visible')
    display_width = SelectField(
        'Width',
        choices=[('25', '25%'), ('50', '50%'), ('75', '75%'), ('100', '100%')],
        coerce=int,
        default=50
    )
    alignment = SelectField(
        'Alignment',
        choices=[('left', 'Left'), ('center', 'Center'), ('right', 'Right')],
        default='center'
    )
