"""
WTForms Form Classes for the Refittr dashboard

Pages render and validate these forms directly. The JSON API reuses the same
classes (CSRF disabled) by turning the request payload into form data, so
pages and API share one set of validation rules and messages.
"""

from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileAllowed, FileSize
from werkzeug.datastructures import MultiDict
from wtforms import StringField, PasswordField, TextAreaField, IntegerField, SelectField, BooleanField, HiddenField, SubmitField
from wtforms.validators import DataRequired, InputRequired, Length, ValidationError, Optional, NumberRange, Regexp

from refittr.models import Builder, HouseSchema, Room, Development


IMAGE_EXTENSIONS = ['jpg', 'jpeg', 'png', 'gif', 'webp']
PHOTO_EXTENSIONS = ['jpg', 'jpeg', 'png', 'webp']
MB = 1024 * 1024


def builder_choices(placeholder='Select a builder'):
    builders = Builder.query.order_by(Builder.name.asc()).all()
    return [('', placeholder)] + [(builder.id, builder.name) for builder in builders]


def schema_choices():
    schemas = (
        HouseSchema.query
        .join(Builder, HouseSchema.builder_id == Builder.id)
        .order_by(Builder.name.asc(), HouseSchema.model_name.asc())
        .all()
    )
    return [('', 'Select a house schema')] + [
        (schema.id, f"{schema.builder.name} - {schema.model_name}") for schema in schemas
    ]


def development_choices():
    developments = Development.query.order_by(Development.name.asc()).all()
    return [('', 'No development')] + [(dev.id, dev.name) for dev in developments]


class LoginForm(FlaskForm):
    """Dashboard sign-in form"""

    email = StringField('Email', validators=[
        DataRequired(message='Email is required'),
        Length(max=255, message='Must be 255 characters or less')
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required')
    ])
    remember_me = BooleanField('Remember Me')
    submit = SubmitField('Sign In')


class MailingListForm(FlaskForm):
    """Launch mailing-list signup on the public site"""

    email = StringField('Email', filters=[lambda v: v.strip() if v else v], validators=[
        DataRequired(message='Email is required'),
        Length(max=255, message='Must be 255 characters or less'),
        Regexp(r'^[^\s@]+@[^\s@]+\.[^\s@]+$', message='Please enter a valid email address'),
    ])
    submit = SubmitField('Notify Me')


class BuilderForm(FlaskForm):
    """Create/edit a builder. ``logo`` comes from pages, ``logo_url`` from the API."""

    name = StringField('Builder Name', validators=[
        DataRequired(message='Builder name is required'),
        Length(max=Builder.NAME_MAX_LENGTH, message='Builder name must be 100 characters or less')
    ])
    notes = TextAreaField('Notes', validators=[
        Optional(),
        Length(max=Builder.NOTES_MAX_LENGTH, message='Notes must be 500 characters or less')
    ])
    logo = FileField('Logo', validators=[
        Optional(),
        FileAllowed(IMAGE_EXTENSIONS, message='Please select an image file'),
        FileSize(max_size=5 * MB, message='Image must be smaller than 5MB'),
    ])
    logo_url = StringField('Logo URL', validators=[Optional(), Length(max=600)])
    remove_logo = BooleanField('Remove current logo')
    submit = SubmitField('Save Builder')


class SchemaBasicsForm(FlaskForm):
    """Wizard step 1 and the shared core of every schema form"""

    builder_id = SelectField('Builder', choices=[], validators=[
        DataRequired(message='Please select a builder')
    ])
    model_name = StringField('Model Name', validators=[
        DataRequired(message='Model name is required'),
        Length(max=100, message='Model name must be 100 characters or less')
    ])
    bedrooms = IntegerField('Bedrooms', validators=[
        InputRequired(message='Number of bedrooms is required'),
        NumberRange(min=HouseSchema.MIN_BEDROOMS, max=HouseSchema.MAX_BEDROOMS, message='Bedrooms must be between 1 and 10')
    ])
    property_type = SelectField('Property Type', choices=[], validators=[
        DataRequired(message='Please select a property type')
    ])
    year_from = IntegerField('Year From', validators=[
        Optional(),
        NumberRange(min=HouseSchema.MIN_YEAR, max=HouseSchema.MAX_YEAR, message='Year must be between 1900 and 2030')
    ])
    year_to = IntegerField('Year To', validators=[
        Optional(),
        NumberRange(min=HouseSchema.MIN_YEAR, max=HouseSchema.MAX_YEAR, message='Year must be between 1900 and 2030')
    ])
    notes = TextAreaField('Notes', validators=[Optional()])
    submit = SubmitField('Continue')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.builder_id.choices = builder_choices()
        self.property_type.choices = [('', 'Select a property type')] + [(t, t) for t in HouseSchema.PROPERTY_TYPES]

    def validate_year_to(self, field):
        if field.data is not None and self.year_from.data is not None and field.data < self.year_from.data:
            raise ValidationError('Year To must be greater than or equal to Year From')


class SchemaFilesForm(FlaskForm):
    """Wizard step 2. Required-ness depends on what the wizard already holds."""

    floor_plan = FileField('Floor Plan (PDF)', validators=[
        Optional(),
        FileAllowed(['pdf'], message='Please select a PDF file'),
        FileSize(max_size=10 * MB, message='File must be smaller than 10MB'),
    ])
    exterior_photo = FileField('Exterior Photo', validators=[
        Optional(),
        FileAllowed(PHOTO_EXTENSIONS, message='Please select a valid image file (JPG, PNG, or WebP)'),
        FileSize(max_size=5 * MB, message='Image must be smaller than 5MB'),
    ])
    spec_sheet = FileField('Spec Sheet (optional)', validators=[
        Optional(),
        FileAllowed(['pdf'] + PHOTO_EXTENSIONS, message='Please select a PDF or image file'),
        FileSize(max_size=10 * MB, message='File must be smaller than 10MB'),
    ])
    submit = SubmitField('Continue')


class SchemaStreetsForm(FlaskForm):
    """Wizard step 3: add/remove one street per post, or continue."""

    action = HiddenField('Action')
    street_id = HiddenField('Street')


class SchemaReviewForm(FlaskForm):
    """Wizard step 4"""

    confirm = BooleanField(
        'I have reviewed all the information above and confirm it is correct',
        validators=[DataRequired(message='Please confirm the information is correct before creating the schema')],
    )
    submit = SubmitField('Create House Schema')


class SchemaEditForm(SchemaBasicsForm):
    """Single-page edit of an existing schema with optional document replacement"""

    verified = BooleanField('Verified')
    floor_plan = FileField('Replace Floor Plan (PDF)', validators=[
        Optional(),
        FileAllowed(['pdf'], message='Please select a PDF file'),
        FileSize(max_size=10 * MB, message='File must be smaller than 10MB'),
    ])
    exterior_photo = FileField('Replace Exterior Photo', validators=[
        Optional(),
        FileAllowed(PHOTO_EXTENSIONS, message='Please select a valid image file (JPG, PNG, or WebP)'),
        FileSize(max_size=5 * MB, message='Image must be smaller than 5MB'),
    ])
    spec_sheet = FileField('Replace Spec Sheet', validators=[
        Optional(),
        FileAllowed(['pdf'] + PHOTO_EXTENSIONS, message='Please select a PDF or image file'),
        FileSize(max_size=10 * MB, message='File must be smaller than 10MB'),
    ])
    remove_spec_sheet = BooleanField('Remove spec sheet')
    submit = SubmitField('Save Changes')


class SchemaForm(SchemaBasicsForm):
    """API form: documents arrive as URLs returned by the upload endpoint"""

    verified = BooleanField('Verified')
    floor_plan_url = StringField('Floor Plan URL', validators=[Optional(), Length(max=600)])
    exterior_photo_url = StringField('Exterior Photo URL', validators=[Optional(), Length(max=600)])
    spec_sheet_url = StringField('Spec Sheet URL', validators=[Optional(), Length(max=600)])


class RoomForm(FlaskForm):
    """Add/edit a room"""

    house_schema_id = SelectField('House Schema', choices=[], validators=[
        DataRequired(message='Please select a house schema')
    ])
    room_name = StringField('Room Name', validators=[
        DataRequired(message='Room name is required'),
        Length(max=100, message='Room name must be 100 characters or less')
    ])
    room_type = SelectField('Room Type', choices=list(Room.ROOM_TYPES), default='bedroom', validators=[
        DataRequired(message='Please select a room type')
    ])
    floor_level = IntegerField('Floor Level', default=0, validators=[
        Optional(),
        NumberRange(min=-5, max=50, message='Floor level must be between -5 and 50')
    ])
    length_cm = IntegerField('Length (cm)', validators=[
        InputRequired(message='Length is required'),
        NumberRange(min=1, message='Length must be a positive number')
    ])
    width_cm = IntegerField('Width (cm)', validators=[
        InputRequired(message='Width is required'),
        NumberRange(min=1, message='Width must be a positive number')
    ])
    height_cm = IntegerField('Height (cm)', default=Room.DEFAULT_HEIGHT_CM, validators=[
        Optional(),
        NumberRange(min=1, message='Height must be a positive number')
    ])
    dimensions_need_verification = BooleanField('Dimensions need verification')
    verification_reason = TextAreaField('Verification reason', validators=[Optional(), Length(max=500)])
    notes = TextAreaField('Notes', validators=[Optional()])
    submit = SubmitField('Save Room')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.house_schema_id.choices = schema_choices()


class StreetForm(FlaskForm):
    """Create/edit a street; postcode area is derived on save"""

    street_name = StringField('Street Name', validators=[
        DataRequired(message='Street name is required'),
        Length(max=150, message='Street name must be 150 characters or less')
    ])
    postcode = StringField('Postcode', validators=[
        DataRequired(message='Postcode is required'),
        Length(max=10, message='Postcode must be 10 characters or less')
    ])
    development_id = SelectField('Development', choices=[], validators=[Optional()])
    submit = SubmitField('Save Street')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.development_id.choices = development_choices()


class DevelopmentForm(FlaskForm):
    """Create/edit a housing development"""

    name = StringField('Development Name', validators=[
        DataRequired(message='Development name is required'),
        Length(max=150, message='Development name must be 150 characters or less')
    ])
    postcode_area = StringField('Postcode Area', validators=[Optional(), Length(max=10)])
    development_type = SelectField('Development Type', choices=[], validators=[Optional()])
    builder_id = SelectField('Builder', choices=[], validators=[Optional()])
    year_built = IntegerField('Year Built', validators=[
        Optional(),
        NumberRange(min=1800, max=2100, message='Year built must be between 1800 and 2100')
    ])
    notes = TextAreaField('Notes', validators=[Optional()])
    submit = SubmitField('Save Development')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.development_type.choices = [('', 'Select a type')] + [(t, t) for t in Development.DEVELOPMENT_TYPES]
        self.builder_id.choices = builder_choices(placeholder='No builder')


def formdata_from_json(payload, existing=None):
    """Turn a JSON object into form data for the API.

    ``existing`` holds the stored record's values; keys present in the payload
    override them, which gives PUT partial-update semantics.
    """

    merged = dict(existing or {})
    merged.update(payload or {})

    formdata = MultiDict()
    for key, value in merged.items():
        if value is None or isinstance(value, dict):
            continue
        if isinstance(value, bool):
            formdata.add(key, 'y' if value else '')
        elif isinstance(value, (list, tuple)):
            for item in value:
                formdata.add(key, str(item))
        else:
            formdata.add(key, str(value))
    return formdata


def first_error(form):
    for messages in form.errors.values():
        if messages:
            return messages[0]
    return 'Invalid input'
