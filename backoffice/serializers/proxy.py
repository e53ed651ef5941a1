"""
Query string validation for the JSON proxy.

Only the parameters the backend understands are forwarded; anything else
the browser sends is dropped.
"""
from rest_framework import serializers

SORT_ORDERS = ('asc', 'desc')


class ListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, default=1)
    per_page = serializers.IntegerField(min_value=1, max_value=100, default=10)
    sort_by = serializers.CharField(required=False, allow_blank=True)
    sort_order = serializers.ChoiceField(choices=SORT_ORDERS, default='asc')
    filter = serializers.CharField(required=False, allow_blank=True)
    veterinary_id = serializers.IntegerField(required=False, min_value=1)
    paginate = serializers.CharField(required=False, allow_blank=True)
    type_pet_id = serializers.IntegerField(required=False, min_value=1)

    def to_query(self, allowed) -> dict:
        data = dict(self.validated_data)
        query = {'page': data.pop('page'), 'per_page': data.pop('per_page')}
        sort_order = data.pop('sort_order')
        for name in allowed:
            if data.get(name) not in (None, ''):
                query[name] = data[name]
        if query.get('sort_by'):
            query['sort_order'] = sort_order
        return query


class VeterinaryQuerySerializer(serializers.Serializer):
    veterinary_id = serializers.IntegerField(required=False, min_value=1)


class AnalyticsQuerySerializer(VeterinaryQuerySerializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        start, end = attrs.get('start_date'), attrs.get('end_date')
        if start and end and start > end:
            raise serializers.ValidationError({'start_date': 'La fecha inicial no puede ser posterior a la final'})
        return attrs


class MovementsQuerySerializer(serializers.Serializer):
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)
    veterinary_id = serializers.IntegerField(required=False, min_value=1)
