from werkzeug.datastructures import MultiDict

from refittr.forms import RoomForm, SchemaBasicsForm, StreetForm, first_error, formdata_from_json


def test_formdata_from_json_flattens_values():
    formdata = formdata_from_json({
        'model_name': 'The Hadley',
        'bedrooms': 3,
        'verified': True,
        'street_ids': ['a', 'b'],
        'notes': None,
        'builder': {'id': 'x', 'name': 'Barratt Homes'},
    })

    assert formdata.get('model_name') == 'The Hadley'
    assert formdata.get('bedrooms') == '3'
    assert formdata.get('verified') == 'y'
    assert formdata.getlist('street_ids') == ['a', 'b']
    assert 'notes' not in formdata
    assert 'builder' not in formdata


def test_formdata_from_json_merges_over_existing():
    existing = {'model_name': 'The Hadley', 'bedrooms': 3, 'verified': True}

    formdata = formdata_from_json({'bedrooms': 4, 'verified': False}, existing)

    assert formdata.get('model_name') == 'The Hadley'
    assert formdata.get('bedrooms') == '4'
    assert formdata.get('verified') == ''


def test_formdata_from_json_handles_missing_payload():
    assert formdata_from_json(None) == MultiDict()


def test_first_error_without_errors(app):
    with app.test_request_context():
        form = StreetForm(formdata=MultiDict(), meta={'csrf': False})
        assert first_error(form) == 'Invalid input'


def test_street_form_first_error(app):
    with app.test_request_context():
        form = StreetForm(formdata=MultiDict({'street_name': 'Meadow Close'}), meta={'csrf': False})
        assert form.validate() is False
        assert first_error(form) == 'Postcode is required'


def test_schema_year_to_before_year_from(app, factory):
    builder_id = factory.builder()
    with app.test_request_context():
        form = SchemaBasicsForm(formdata=MultiDict({
            'builder_id': builder_id,
            'model_name': 'The Hadley',
            'bedrooms': '3',
            'property_type': 'Detached',
            'year_from': '2015',
            'year_to': '2010',
        }), meta={'csrf': False})

        assert form.validate() is False
        assert form.errors == {'year_to': ['Year To must be greater than or equal to Year From']}


def test_schema_bedrooms_out_of_range(app, factory):
    builder_id = factory.builder()
    with app.test_request_context():
        form = SchemaBasicsForm(formdata=MultiDict({
            'builder_id': builder_id,
            'model_name': 'The Hadley',
            'bedrooms': '11',
            'property_type': 'Detached',
        }), meta={'csrf': False})

        assert form.validate() is False
        assert form.errors['bedrooms'] == ['Bedrooms must be between 1 and 10']


def test_room_form_defaults(app, sample):
    with app.test_request_context():
        form = RoomForm(formdata=MultiDict({
            'house_schema_id': sample.schema_id,
            'room_name': 'Lounge',
            'room_type': 'living',
            'length_cm': '450',
            'width_cm': '360',
        }), meta={'csrf': False})

        assert form.validate() is True
        assert form.floor_level.data == 0
        assert form.height_cm.data == 240
        assert form.house_schema_id.choices[1] == (sample.schema_id, 'Barratt Homes - The Hadley')
