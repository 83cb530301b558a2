import pytest

from kernelkit.linkedlist import LinkedList, ListNode


def values(lst):
    return [n.value for n in lst]


def test_push_head_and_tail_order():
    lst = LinkedList()
    lst.push_tail(ListNode("b"))
    lst.push_head(ListNode("a"))
    lst.push_tail(ListNode("c"))
    assert values(lst) == ["a", "b", "c"]
    assert len(lst) == 3
    assert lst.head.value == "a" and lst.tail.value == "c"


def test_pop_head_and_tail():
    lst = LinkedList()
    for v in "abc":
        lst.push_tail(ListNode(v))
    head = lst.pop_head()
    tail = lst.pop_tail()
    assert (head.value, tail.value) == ("a", "c")
    assert head.list is None and head.next is None
    assert values(lst) == ["b"]
    lst.pop_head()
    assert lst.head is None and lst.tail is None
    assert len(lst) == 0


def test_pop_empty_raises():
    with pytest.raises(IndexError):
        LinkedList().pop_head()
    with pytest.raises(IndexError):
        LinkedList().pop_tail()


def test_remove_middle_head_tail():
    lst = LinkedList()
    nodes = [ListNode(v) for v in "abcd"]
    for n in nodes:
        lst.push_tail(n)
    lst.remove(nodes[1])
    assert values(lst) == ["a", "c", "d"]
    lst.remove(nodes[0])
    lst.remove(nodes[3])
    assert values(lst) == ["c"]
    assert len(lst) == 1
    assert nodes[1].list is None


def test_remove_unlinked_node_is_noop():
    lst = LinkedList()
    lst.push_tail(ListNode("a"))
    lst.remove(ListNode("x"))
    assert values(lst) == ["a"]


def test_remove_from_wrong_list():
    a, b = LinkedList(), LinkedList()
    node = ListNode("x")
    a.push_tail(node)
    with pytest.raises(ValueError):
        b.remove(node)


def test_node_cannot_join_two_lists():
    a, b = LinkedList(), LinkedList()
    node = ListNode("x")
    a.push_head(node)
    with pytest.raises(ValueError):
        b.push_tail(node)


def test_push_priority_orders_descending():
    lst = LinkedList()
    lst.push_priority(ListNode(1), 1)
    lst.push_priority(ListNode(3), 3)
    lst.push_priority(ListNode(2), 2)
    assert values(lst) == [3, 2, 1]
    assert len(lst) == 3
    assert lst.tail.value == 1


def test_push_priority_first_node_gets_zero_priority():
    lst = LinkedList()
    node = ListNode("x")
    lst.push_priority(node, 7)
    assert node.priority == 0
    assert node.list is lst


def test_links_are_consistent():
    lst = LinkedList()
    for v in range(5):
        lst.push_priority(ListNode(v), v)
    forward = list(lst)
    backward = []
    n = lst.tail
    while n is not None:
        backward.append(n)
        n = n.prev
    assert forward == backward[::-1]