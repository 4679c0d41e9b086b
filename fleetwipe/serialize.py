import inspect
import yaml


# Settings objects are saved as the arguments of their __init__ and rebuilt by calling __init__ again,
# rather than dumping whatever ended up in __dict__. Anything an object wants persisted has to be an
# __init__ argument stored under the same name.
# Arguments still at their default value are left out so hand written settings files stay short.
# Subclasses only need a yaml_tag = u"!Something" to be loadable.
class Serializable(yaml.YAMLObject):
    yaml_loader = yaml.SafeLoader #whitelisted so yaml.safe_load() can build these

    @classmethod
    def to_yaml(cls, dumper, data):
        parameters = inspect.signature(data.__init__).parameters
        arg_values = []
        for var_name,param in parameters.items():
            value = data.__dict__[var_name]
            if param.default is not inspect.Parameter.empty and value == param.default:
                continue
            arg_values.append((dumper.represent_data(var_name), dumper.represent_data(value)))
        return yaml.nodes.MappingNode(cls.yaml_tag, arg_values)

    @classmethod
    def from_yaml(cls, loader, node):
        fields = loader.construct_mapping(node, deep=True)
        return cls(**fields)
