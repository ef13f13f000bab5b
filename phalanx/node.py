'''Helper for constructing small typed parameter objects.

Provides pretty printing and strict keyword initialization on top of traits.
'''
from traits.api import HasStrictTraits

def node_str(node):
  member_strings = ['%s = %s' % (k, v) for k, v in node_iteritems(node)]
  child_str = '  ' + ',\n'.join(member_strings)
  child_str = child_str.replace('\n', '\n  ')

  return "%s { \n%s \n}" % (node.node_type, child_str)

def node_iteritems(node):
  for k in node.members:
    yield (k, getattr(node, k, None))

class Node(HasStrictTraits):
  '''Base class of parameter nodes; unknown attributes are rejected.'''
  def __init__(self, *args, **kw):
    super(Node, self).__init__(*args, **kw)

  @property
  def members(self):
    return sorted(self.class_editable_traits())

  @property
  def node_type(self):
    return self.__class__.__name__

  def __repr__(self):
    return '%s(%s)' % (self.node_type,
                       ', '.join('%s=%r' % (k, v) for k, v in node_iteritems(self)))

  def debug_str(self):
    return node_str(self)
