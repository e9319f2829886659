from rest_framework import serializers


class ApplyFiltersSerializer(serializers.Serializer):
    records = serializers.JSONField()
    groups = serializers.ListField(child=serializers.DictField(), required=False, default=list)


class CompatibilitySerializer(serializers.Serializer):
    # dataset id -> records, or key -> records mapping as returned by a data function
    datasets = serializers.DictField(child=serializers.JSONField())
    names = serializers.DictField(child=serializers.CharField(allow_blank=True), required=False, default=dict)
    selected = serializers.ListField(child=serializers.CharField(), required=False, default=None, allow_null=True)


class GridSerializer(serializers.Serializer):
    columns = serializers.IntegerField(min_value=1, required=False)
    row_height = serializers.IntegerField(min_value=1, required=False)
    # camelCase spelling sent by the canvas frontend
    rowHeight = serializers.IntegerField(min_value=1, required=False)
    margin = serializers.IntegerField(min_value=0, required=False)


class SizeSerializer(serializers.Serializer):
    width = serializers.IntegerField(min_value=1)
    height = serializers.IntegerField(min_value=1)


class PlaceComponentSerializer(serializers.Serializer):
    components = serializers.ListField(child=serializers.DictField(), required=False, default=list)
    size = SizeSerializer()
    grid = GridSerializer(required=False)


class CompactLayoutSerializer(serializers.Serializer):
    components = serializers.ListField(child=serializers.DictField())
    grid = GridSerializer(required=False)
